"""localec: compilador incremental de traducciones para archivos de locales."""

__version__ = "0.1.0"
