"""EV3 project archive loading.

An ``.ev3`` project is a zip archive of metadata members plus one XML
program file per program. Metadata is decoded here; every other member is
handed to the block-diagram builder.
"""

import io
import logging
import zipfile
from pathlib import Path

from pydantic import BaseModel, Field

from ev3diagram import DiagramError, Document, build_document
from ev3parse.config import Ev3ParseConfig, FileErrorPolicy, create_default_config

logger = logging.getLogger(__name__)

# Archive member name -> Project field
METADATA_MEMBERS: dict[str, str] = {
    "___ProjectTitle": "title",
    "___ProjectDescription": "description",
    "___CopyrightYear": "year",
    "___ProjectThumbnail": "thumbnail",
    "Activity.x3a": "activity",
    "ActivityAssets.laz": "activity_assets",
    "Project.lvprojx": "project",
}

_TEXT_FIELDS = {"title", "description", "activity", "project"}


class ProjectArchiveError(ValueError):
    """Raised when an archive cannot be turned into a Project."""


class Project(BaseModel):
    """Parsed EV3 project archive."""
    title: str
    description: str
    year: int
    thumbnail: bytes
    activity: str
    activity_assets: bytes
    project: str  # project descriptor, kept verbatim
    files: dict[str, Document] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)  # member name -> error, skip policy only

    def output_file(self, path: str | Path) -> None:
        """Write the project back to an ``.ev3`` archive.

        Raises:
            NotImplementedError: Serialization is not implemented yet
        """
        raise NotImplementedError(f"Writing EV3 projects is not implemented yet ({path})")


class ProjectLoader:
    """Loads ``.ev3`` archives into Project models."""

    def __init__(self, config: Ev3ParseConfig | None = None):
        """Initialize loader.

        Args:
            config: Loader configuration, defaults to strict parsing and abort policy
        """
        self.config = config or create_default_config()

    def load(self, archive_path: Path) -> Project:
        """Load a project archive from disk.

        Raises:
            FileNotFoundError: If the archive does not exist
            ProjectArchiveError: If the archive or one of its members is invalid
        """
        if not archive_path.exists():
            raise FileNotFoundError(f"Project archive not found: {archive_path}")
        return self.from_bytes(archive_path.read_bytes(), source=str(archive_path))

    def from_bytes(self, data: bytes, source: str = "<bytes>") -> Project:
        """Load a project archive held in memory."""
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                members = [
                    (info.filename, archive.read(info))
                    for info in archive.infolist()
                    if not info.is_dir()
                ]
        except zipfile.BadZipFile as e:
            raise ProjectArchiveError(f"Failed to read zip file {source}: {e}")

        metadata = {}
        programs = []
        for name, content in members:
            field = METADATA_MEMBERS.get(name)
            if field is None:
                programs.append((name, content))
            else:
                metadata[field] = self._decode_metadata(field, name, content)

        for name, field in METADATA_MEMBERS.items():
            if field not in metadata:
                raise ProjectArchiveError(f"Found no {field} ({name}) in {source}")

        files, failures = self._build_programs(programs)
        logger.info(f"Loaded {source}: {len(files)} program files, {len(failures)} failed")
        return Project(**metadata, files=files, failures=failures)

    def _decode_metadata(self, field: str, name: str, content: bytes):
        if field == "year":
            text = content.decode("ascii", errors="replace").strip()
            if not text.isascii() or not text.isdigit():
                raise ProjectArchiveError(f"Invalid copyright year in {name}: {text!r}")
            return int(text)
        if field in _TEXT_FIELDS:
            try:
                return content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise ProjectArchiveError(f"Invalid {field} data in {name}: {e}")
        return content

    def _build_programs(self, programs: list[tuple[str, bytes]]) -> tuple[dict[str, Document], dict[str, str]]:
        files = {}
        failures = {}
        ignore_unknown = self.config.parser.ignore_unknown_tags
        for name, content in programs:
            try:
                files[name] = build_document(name, content, ignore_unknown=ignore_unknown)
            except DiagramError as e:
                if self.config.project.on_file_error == FileErrorPolicy.SKIP:
                    logger.warning(f"Skipping {name}: {e}")
                    failures[name] = str(e)
                    continue
                raise ProjectArchiveError(f"Failed parsing {name}: {e}") from e
        return files, failures


def load_project(archive_path: str | Path, config: Ev3ParseConfig | None = None) -> Project:
    """Convenience function to load an ``.ev3`` archive."""
    return ProjectLoader(config).load(Path(archive_path))


def parse_program_file(file_path: str | Path, ignore_unknown: bool = False) -> Document:
    """Parse a single extracted program file.

    Raises:
        FileNotFoundError: If the file does not exist
        DiagramError: On the first validation failure
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Program file not found: {file_path}")
    return build_document(file_path.name, file_path.read_bytes(), ignore_unknown=ignore_unknown)
