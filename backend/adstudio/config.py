import os

# Outbound request timeouts, in seconds. Services take these as required
# arguments; only the HTTP layer reads them from here.
SCRAPE_FETCH_TIMEOUT = float(os.getenv("SCRAPE_FETCH_TIMEOUT", "20"))
AI_REQUEST_TIMEOUT = float(os.getenv("AI_REQUEST_TIMEOUT", "120"))
IMAGE_REQUEST_TIMEOUT = float(os.getenv("IMAGE_REQUEST_TIMEOUT", "180"))

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
