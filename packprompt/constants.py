# Record framing
START_MARK = "--- FILE"
END_MARK = "--- END FILE ---"
HEADER_PATH_KEY = "path_b64"

# Base64 body layout: 57 raw bytes encode to exactly one 76-char line
B64_LINE_LENGTH = 76
B64_LINE_BYTES = 57
ENCODE_BLOCK_SIZE = B64_LINE_BYTES * 1024  # ~57 KiB per read

# Binary classification
SNIFF_SIZE = 8192
SNIFF_CONTENT_TYPE_LEN = 512
NON_PRINTABLE_THRESHOLD = 0.30

# Permissions
MODE_MASK = 0o7777
DEFAULT_MODE = 0o644
DEFAULT_DIR_MODE = 0o755

DEFAULT_ARCHIVE_NAME = "files-prompt.txt"

DEFAULT_EXCLUDES = (
    # VCS / IDE
    ".git", ".svn", ".hg", ".idea", ".vscode",
    # dependencies / caches
    "node_modules", ".venv",
    # OS metadata
    ".DS_Store",
    # images, documents, archives
    "*.png", "*.jpg", "*.jpeg", "*.gif", "*.webp", "*.ico",
    "*.pdf", "*.zip", "*.tar", "*.gz", "*.xz", "*.7z", "*.rar", "*.jar", "*.war",
    # compiled objects and executables
    "*.class", "*.so", "*.dll", "*.dylib", "*.bin", "*.exe",
)
