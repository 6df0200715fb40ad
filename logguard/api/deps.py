from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from logguard.core.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_db(request: Request) -> Generator[Session, None, None]:
    db = get_container(request).session_factory()
    try:
        yield db
    finally:
        db.close()
