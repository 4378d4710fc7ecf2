import logging

from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import after_log, before_log, retry, stop_after_attempt, wait_fixed

from app.core.db import engine
from app.core.pool import QueryDataSource, connect, health_check

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 5 minutes
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(db_engine: Engine) -> None:
    try:
        with Session(db_engine) as session:
            # Try to create session to check if DB is awake
            session.exec(select(1))
    except Exception as e:
        logger.error(e)
        raise e


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init_query_datasource(datasource: QueryDataSource) -> None:
    conn = connect(datasource)
    try:
        if not health_check(conn, datasource.product_type):
            raise RuntimeError(f"Query datasource {datasource.host}:{datasource.port} not ready")
    finally:
        conn.close()


def main() -> None:
    logger.info("Initializing service")
    init(engine)
    init_query_datasource(QueryDataSource.from_settings())
    logger.info("Service finished initializing")


if __name__ == "__main__":
    main()
