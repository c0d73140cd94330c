import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./domainmap.db")

LAYOUT_ENGINE = os.getenv("LAYOUT_ENGINE", "orthogonal")  # orthogonal | remote
LAYOUT_SERVICE_URL = os.getenv("LAYOUT_SERVICE_URL", "http://localhost:8090")
LAYOUT_TIMEOUT = float(os.getenv("LAYOUT_TIMEOUT", "30"))
LAYOUT_ANIMATION_DURATION = float(os.getenv("LAYOUT_ANIMATION_DURATION", "0.5"))
LAYOUT_ANIMATION_FRAMES = int(os.getenv("LAYOUT_ANIMATION_FRAMES", "12"))

DUPLICATE_EDGE_POLICY = os.getenv("DUPLICATE_EDGE_POLICY", "keep")  # keep | merge

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
