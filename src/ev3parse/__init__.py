"""ev3parse - Strict parser for LEGO MINDSTORMS EV3 block-diagram projects.

ev3parse reads .ev3 project archives, decodes their metadata, and builds a
validated block/wire graph for every program file using ev3diagram.
"""

__version__ = "0.1.0"
__author__ = "ev3parse contributors"
__description__ = "Strict parser for EV3 block-diagram projects"

from ev3parse.config import Ev3ParseConfig

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "Ev3ParseConfig",
]
