"""DiaStudio: text-to-dialogue generation proxy + spectrum visualizer."""

__version__ = "0.1.0"
