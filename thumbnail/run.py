"""Run script for thumbnail service"""

import uvicorn
import sys
from pathlib import Path

# Add repository root to path
ROOT_DIR = Path(__file__).resolve().parent
if str(ROOT_DIR.parent) not in sys.path:
    sys.path.append(str(ROOT_DIR.parent))

from thumbnail.app.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "thumbnail.app.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
