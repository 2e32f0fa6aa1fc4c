import os
import logging
from dotenv import load_dotenv
from botocore.client import Config as BotoConfig
import boto3

# Load .env from project root
try:
    load_dotenv(dotenv_path=os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".env")))
except Exception:
    try:
        load_dotenv()
    except Exception:
        pass

# Environment
R2_ACCOUNT_ID = os.getenv("R2_ACCOUNT_ID", "")
R2_ACCESS_KEY_ID = os.getenv("R2_ACCESS_KEY_ID", "")
R2_SECRET_ACCESS_KEY = os.getenv("R2_SECRET_ACCESS_KEY", "")
R2_BUCKET = os.getenv("R2_BUCKET", "")

# Theme packages (JSON default templates, global section defaults, settings schema)
THEMES_DIR = os.path.abspath(os.getenv("THEMES_DIR", "") or os.path.join(os.path.dirname(__file__), "..", "themes"))
DEFAULT_THEME_CODE = (os.getenv("DEFAULT_THEME_CODE", "base") or "base").strip()

# Editable theme source files live under this storage prefix
THEME_FILES_PREFIX = (os.getenv("THEME_FILES_PREFIX", "theme-files") or "theme-files").strip().strip("/")

# Backups / history listing caps
BACKUP_LIST_LIMIT = int(os.getenv("BACKUP_LIST_LIMIT", "20"))
BACKUP_LIST_MAX = int(os.getenv("BACKUP_LIST_MAX", "100"))
FILE_HISTORY_LIMIT = int(os.getenv("FILE_HISTORY_LIMIT", "50"))

ADMIN_EMAILS = [e.strip().lower() for e in (os.getenv("ADMIN_EMAILS", "").split(",") if os.getenv("ADMIN_EMAILS") else []) if e.strip()]

# Logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
logger = logging.getLogger("storefront")

# Static dir helper (local storage fallback when R2 is not configured)
STATIC_DIR = os.getenv("STATIC_DIR", "") or os.path.join(os.path.dirname(__file__), "..", "static")
STATIC_DIR = os.path.abspath(STATIC_DIR)

# S3/R2 client for storage operations
s3 = None

if R2_ACCOUNT_ID and R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY:
    s3 = boto3.resource(
        "s3",
        endpoint_url=f"https://{R2_ACCOUNT_ID}.r2.cloudflarestorage.com",
        aws_access_key_id=R2_ACCESS_KEY_ID,
        aws_secret_access_key=R2_SECRET_ACCESS_KEY,
        config=BotoConfig(signature_version="s3v4"),
        region_name="auto",
    )
