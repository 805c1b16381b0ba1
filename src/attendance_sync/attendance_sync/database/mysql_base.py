from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Protocol, Sequence


class ConnectionFactory(Protocol):
    def connect(self): ...


@contextmanager
def db_cursor(conn_factory: ConnectionFactory, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def transaction(conn_factory: ConnectionFactory, *, dictionary: bool = True) -> Iterator[Any]:
    """Run the block inside ``START TRANSACTION`` ... ``COMMIT``.

    Any exception rolls the whole transaction back before it propagates.
    """

    conn = conn_factory.connect()
    try:
        conn.start_transaction()
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield cur
        except Exception:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            cur.close()
    finally:
        conn.close()


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def placeholders(values: Sequence[Any]) -> str:
    return ", ".join(["%s"] * len(values))
