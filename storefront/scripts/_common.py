import logging
from typing import Tuple

from dotenv import find_dotenv, load_dotenv
from sqlalchemy.orm import Session

from storefront.config import Settings
from storefront.models.base import get_engine, make_session_factory


def load_script_settings() -> Settings:
    """Settings for one-off scripts; .env.local wins over .env."""
    for name in (".env.local", ".env"):
        path = find_dotenv(name, usecwd=True)
        if path:
            load_dotenv(path, override=False)
    return Settings()


def open_session() -> Tuple[Settings, Session]:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    settings = load_script_settings()
    return settings, make_session_factory(get_engine(settings))()
