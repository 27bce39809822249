import os

def env_bool(key, default=False):
    return os.getenv(key, str(default)).lower() in ("1", "true", "yes", "on")

def env_list(key, default=()):
    raw = os.getenv(key)
    if raw is None:
        return tuple(default)
    return tuple(item.strip() for item in raw.split(",") if item.strip())

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))

# PDF letter generation
PDF_TEMPLATE_PATH = os.getenv(
    "PDF_TEMPLATE_PATH", os.path.join(BASE_DIR, "templates", "visa-letter-template.pdf")
)
GENERATED_PDF_DIR = os.getenv("GENERATED_PDF_DIR", os.path.join(BASE_DIR, "generated-pdfs"))
PDF_NORMALIZE = env_bool("PDF_NORMALIZE", True)
PDF_NORMALIZER_CANDIDATES = env_list("PDF_NORMALIZER_CANDIDATES", ("qpdf", "qpdf.exe"))
PDF_NORMALIZER_TIMEOUT = float(os.getenv("PDF_NORMALIZER_TIMEOUT", "30"))
DEFAULT_MEETING_LOCATION = os.getenv("DEFAULT_MEETING_LOCATION", "Dallas, TX")
