"""Default configuration, constants, and limits for CubeLUT."""

# --- Table size limits ---
MIN_LUT_SIZE = 2
MAX_1D_SIZE = 65536
MAX_3D_SIZE = 256

# --- Parser ---
LINE_SNIFF_WINDOW = 255  # Characters scanned for the line separator
COMMENT_MARKER = "#"
QUOTE = '"'
TEXT_ENCODING = "utf-8"

# --- Keywords ---
KW_TITLE = "TITLE"
KW_DOMAIN_MIN = "DOMAIN_MIN"
KW_DOMAIN_MAX = "DOMAIN_MAX"
KW_LUT_1D_SIZE = "LUT_1D_SIZE"
KW_LUT_3D_SIZE = "LUT_3D_SIZE"

# --- Defaults ---
DEFAULT_DOMAIN_MIN = (0.0, 0.0, 0.0)
DEFAULT_DOMAIN_MAX = (1.0, 1.0, 1.0)
DEFAULT_TITLE = "CubeLUT"
CREATED_BY = "Created by cubelut"

# --- Allowed file extensions ---
LUT_EXTENSIONS = frozenset({".cube"})

# --- Image application ---
DEFAULT_WORKERS = 4
ROWS_PER_TASK = 64
