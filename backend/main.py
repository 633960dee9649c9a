"""
Casemap Backend - FastAPI entry point
Modules:
  config.py, models.py, record_parser.py, region_index.py, aggregator.py,
  query_engine.py, data_fetchers.py, store.py, session.py, presenter.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

from query_engine import configure_collation  # noqa: E402

# Name sorting collates with LC_COLLATE, which Python leaves at "C" until set
configure_collation()

from routes import app  # noqa: E402,F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
