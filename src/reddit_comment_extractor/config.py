import os

from dotenv import load_dotenv

load_dotenv()


# Reddit fetching configuration (public JSON endpoints)
REDDIT_BASE_URL = os.getenv("REDDIT_BASE_URL", "https://www.reddit.com")
REDDIT_FALLBACK_URL = os.getenv("REDDIT_FALLBACK_URL", "https://old.reddit.com")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "45"))
FETCH_RETRIES = int(os.getenv("FETCH_RETRIES", "3"))

# Rate limiting (dispatch interval seconds)
MIN_REQUEST_INTERVAL = float(os.getenv("MIN_REQUEST_INTERVAL", "1.0"))

# Comment tree handling
MAX_COMMENT_DEPTH = int(os.getenv("MAX_COMMENT_DEPTH", "200"))
DEFAULT_SORT_BY = os.getenv("DEFAULT_SORT_BY", "time")
DEFAULT_SORT_ORDER = os.getenv("DEFAULT_SORT_ORDER", "desc")

# Export
EXPORT_TIME_FORMAT = os.getenv("EXPORT_TIME_FORMAT", "%Y/%m/%d %H:%M:%S")
EXPORT_DIR = os.getenv("EXPORT_DIR", "exports")
