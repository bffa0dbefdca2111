"""Default configuration, constants, and limits for EdgeSmooth."""

# --- Security limits ---
MAX_IMAGE_DIMENSION = 16384  # 16K pixels per side
MAX_IMAGE_PIXELS = 100_000_000  # 100 megapixels
MAX_SOLVER_ITERATIONS = 5000

# --- Allowed file extensions ---
IMAGE_EXTENSIONS = frozenset({
    ".tiff", ".tif", ".png", ".jpg", ".jpeg", ".bmp",
})
VOLUME_EXTENSIONS = frozenset({".npy"})

# --- Numerical safety ---
LOG_EPSILON = 1e-4  # Added to the luminance proxy before the log transform
WEIGHT_EPSILON = 1e-4  # Added to |gradient|^alpha before division
EPSILON = 1e-12  # Division-by-zero guard for preconditioner diagonals

# --- Luma (Rec.601) ---
LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# --- Solver defaults ---
DEFAULT_MAX_ITERATIONS = 200
DEFAULT_TOLERANCE = 0.01
DEFAULT_SOLVER_METHOD = "pcg"
SOLVER_METHODS = frozenset({"pcg", "direct"})

# --- CLI defaults ---
CLI_WLS_TOLERANCE = 0.01  # Solver tolerance used by the -wls stack operator
DEFAULT_BIT_DEPTH = 8  # 16-bit RGB needs a writer that supports it (e.g. TIFF via tifffile)
