from unittest.mock import MagicMock, patch

import pytest

from app.backend_pre_start import init, init_query_datasource, logger
from app.models_query import ProductTypeEnum
from tests.utils.fake_db import make_datasource


def test_init_successful_connection() -> None:
    engine_mock = MagicMock()

    session_mock = MagicMock()
    session_mock.exec.return_value = True
    # with Session(engine) as session: binds session to Session(engine).__enter__()
    session_mock.__enter__.return_value = session_mock
    session_mock.__exit__.return_value = None

    with (
        patch("app.backend_pre_start.Session", return_value=session_mock),
        patch.object(logger, "info"),
        patch.object(logger, "error"),
        patch.object(logger, "warn"),
    ):
        try:
            init(engine_mock)
            connection_successful = True
        except Exception:
            connection_successful = False

        assert (
            connection_successful
        ), "The database connection should be successful and not raise an exception."

        session_mock.exec.assert_called_once()


def test_init_query_datasource_checks_and_closes() -> None:
    conn = MagicMock()
    with (
        patch("app.backend_pre_start.connect", return_value=conn) as mock_connect,
        patch("app.backend_pre_start.health_check", return_value=True) as mock_health,
    ):
        init_query_datasource(make_datasource())

    mock_connect.assert_called_once()
    mock_health.assert_called_once_with(conn, ProductTypeEnum.POSTGRES)
    conn.close.assert_called_once()


def test_init_query_datasource_not_ready() -> None:
    """The retry wrapper gives up after its attempts; check the undecorated call."""
    conn = MagicMock()
    with (
        patch("app.backend_pre_start.connect", return_value=conn),
        patch("app.backend_pre_start.health_check", return_value=False),
    ):
        with pytest.raises(RuntimeError, match="not ready"):
            init_query_datasource.__wrapped__(make_datasource())
    conn.close.assert_called_once()
