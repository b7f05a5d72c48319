from dotenv import load_dotenv
import os
import sys
from pathlib import Path

import uvicorn

# Add the parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Loads DATABASE_URL_PROD, SECRET_KEY etc. before the settings object is built
load_dotenv()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8000))
    uvicorn.run(
        "src.center_hub_backend.main:app",
        host=os.environ.get('HOST', '0.0.0.0'),
        port=port,
        reload=os.environ.get('RELOAD', '').lower() in ('1', 'true')
    )
