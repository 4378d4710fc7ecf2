"""
Connectivity probe for the query datasource.
"""

import logging
from typing import Any

from app.models_query import ProductTypeEnum

from .connect import execute

_log = logging.getLogger(__name__)


def health_check(conn: Any, product_type: ProductTypeEnum) -> bool:
    """Run SELECT 1 on *conn*; False on any driver error."""
    cur = None
    try:
        cur = execute(conn, "SELECT 1", product_type=product_type)
        cur.fetchone()
        return True
    except Exception as e:
        _log.debug("Query datasource health check failed: %s", e)
        return False
    finally:
        if cur is not None:
            try:
                cur.close()
            except Exception:
                pass
