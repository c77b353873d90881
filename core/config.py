import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME_INSPECTION_SECRET")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))

# Photo storage: keys mirror the bucket layout, files land under UPLOAD_DIR
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "/uploads").rstrip("/")
MAX_IMAGE_SIZE = 10 * 1024 * 1024
MAX_BATCH_FILES = 10

PLATERECOGNIZER_URL = "https://api.platerecognizer.com/v1/plate-reader/"
PLATERECOGNIZER_API_KEY = os.getenv("PLATERECOGNIZER_API_KEY")
PLATERECOGNIZER_REGION = os.getenv("PLATERECOGNIZER_REGION", "tz")

GOOGLE_VISION_URL = "https://vision.googleapis.com/v1/images:annotate"
GOOGLE_VISION_API_KEY = os.getenv("GOOGLE_VISION_API_KEY")
PARKPOW_URL = "https://container-api.parkpow.com/api/v1/predict/"
PARKPOW_API_KEY = os.getenv("PARKPOW_API_KEY")

PIN_MAX_ATTEMPTS = int(os.getenv("PIN_MAX_ATTEMPTS", "5"))
PIN_LOCKOUT_MINUTES = int(os.getenv("PIN_LOCKOUT_MINUTES", "15"))

ECD_NAME = os.getenv("ECD_NAME", "Simba Empty Container Depot")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
