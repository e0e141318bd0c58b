"""EPG catalog: merges XMLTV feeds and JSON catalog APIs into one channel catalog."""

__version__ = "0.1.0"
