from app.core.config import settings
from app.core.logging import configure_logging

from . import create_app

configure_logging(settings.LOG_LEVEL)
app = create_app(settings, instrument=True)
