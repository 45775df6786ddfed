"""Version information for the ev3diagram package."""

__version__ = "0.1.0"
__author__ = "ev3parse contributors"
__description__ = "Strict block-diagram parser for EV3 program files"
