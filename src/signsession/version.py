__version__ = "0.3.0"
__verbose_version__ = f"signsession {__version__}"
