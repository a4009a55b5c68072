import os
from dotenv import load_dotenv

load_dotenv()

# =====================================================
# ENV
# =====================================================
ENV = os.getenv("ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# =====================================================
# DATABASE
# =====================================================
MONGODB_URI = os.getenv("MONGODB_URI") or os.getenv("MONGO_URI")

# multi-document transactions retried on write conflicts
TRANSACTION_MAX_RETRIES = int(os.getenv("TRANSACTION_MAX_RETRIES", 3))

# =====================================================
# JWT
# =====================================================
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_DAYS = int(os.getenv("ACCESS_TOKEN_DAYS", 7))

# =====================================================
# CORS
# =====================================================
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")

# =====================================================
# NOTIFICATIONS
# =====================================================
NOTIFICATIONS_ENABLED = os.getenv("NOTIFICATIONS_ENABLED", "true").lower() in {"1", "true", "yes"}
EMAIL_FROM = os.getenv("EMAIL_FROM", "FanForge <noreply@fanforge.com>")

# --------------------------------------------------
# CLOUDINARY
# --------------------------------------------------

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")


def validate_production_env() -> None:
    if (ENV or "").lower() != "production":
        return

    required = {
        "JWT_SECRET": JWT_SECRET,
        "CLOUDINARY_CLOUD_NAME": CLOUDINARY_CLOUD_NAME,
        "CLOUDINARY_API_KEY": CLOUDINARY_API_KEY,
        "CLOUDINARY_API_SECRET": CLOUDINARY_API_SECRET,
        "MONGODB_URI": MONGODB_URI,
    }

    invalid = []
    for key, value in required.items():
        val = (value or "").strip()
        if not val or val.startswith("CHANGE_THIS"):
            invalid.append(key)

    if invalid:
        raise RuntimeError(f"Production env misconfigured. Invalid keys: {', '.join(sorted(invalid))}")
