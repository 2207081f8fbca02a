"""SQLAlchemy database models."""
from dotenv import load_dotenv
from app.models.base import Base
from app.models.generation_log import GenerationLogEntry
from app.models.pages import ComboPage, IndustryPage, LocationPage
from app.models.queue import QueueItem
from app.models.seed import SeedItem


load_dotenv()

__all__ = [
    "Base",
    "SeedItem",
    "QueueItem",
    "GenerationLogEntry",
    "LocationPage",
    "IndustryPage",
    "ComboPage",
]
