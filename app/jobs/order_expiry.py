import logging
from sqlmodel import Session

from app.config import settings
from app.database import engine
from app.services.order_expiry_service import expire_stale_orders


def run() -> int:
    with Session(engine) as session:
        return len(expire_stale_orders(session))


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level)
    run()
