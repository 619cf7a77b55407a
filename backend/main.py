"""
SafeNet Crime Zone Backend — FastAPI
Modular entry point. All logic is split across:
  config.py, models.py, tokenizer.py, block_parser.py, crime_store.py,
  scoring.py, city_registry.py, zone_resolver.py, ingest.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

# Import the FastAPI app from routes (startup loads the crime table and registry)
from routes import app  # noqa: F401, E402

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
