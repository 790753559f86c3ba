"""
Driver Discipline Backend
=========================
Entry point. Run with: uvicorn main:app --reload

Set RECONCILIATION_ENABLED=true to run the background sweep in-process.
"""

import uvicorn

from src.api.app import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
