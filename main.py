# Entry point: `uvicorn main:app --reload`
from stocksage.main import app

__all__ = ["app"]
