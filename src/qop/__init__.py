"""qop - snapshot a directory tree and exchange line-level patches against it."""

__version__ = "0.1.0"

# Directory and file constants
QOP_DIR = ".qop"
STORE_DIR = "store"
INDEX_FILE = "index.json"
CONFIG_FILE = "config.json"
IGNORE_FILE = ".qopfile"

# Patch source meaning "read from standard input"
STDIN_SENTINEL = "-"
