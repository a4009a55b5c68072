# backend/config/constants.py

# -----------------------------
# COLLECTIONS
# -----------------------------

USERS = "users"
SELLER_PROFILES = "seller_profiles"
PRODUCTS = "products"
ORDERS = "orders"

AUDIT_LOGS = "audit_logs"
ORDER_TIMELINE = "order_timeline"
NOTIFICATION_OUTBOX = "notification_outbox"

# -----------------------------
# PRODUCTS / MEDIA
# -----------------------------

MAX_PRODUCT_IMAGES = 5
PRODUCT_IMAGE_FOLDER = "fanforge/products"
