"""
Error handler tests.

Verifies:
- Duplicate-key integrity errors answer 409
- Other constraint violations (CHECK, NOT NULL) answer 400
- Unclassified exceptions answer a sanitized 500
"""

import sqlite3

import pytest
from sqlalchemy.exc import IntegrityError

from weblarek import create_app


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO orders ...", {}, sqlite3.IntegrityError(message))


@pytest.fixture
def failing_app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })

    @app.get("/_fail/unique")
    def fail_unique():
        raise _integrity_error("UNIQUE constraint failed: products.title")

    @app.get("/_fail/check")
    def fail_check():
        raise _integrity_error("CHECK constraint failed: ck_orders_status")

    @app.get("/_fail/not-null")
    def fail_not_null():
        raise _integrity_error("NOT NULL constraint failed: users.email")

    @app.get("/_fail/boom")
    def fail_boom():
        raise RuntimeError("secret detail")

    return app


def test_unique_violation_is_conflict(failing_app):
    resp = failing_app.test_client().get("/_fail/unique")
    assert resp.status_code == 409
    assert resp.get_json() == {"error": "Resource already exists"}


@pytest.mark.parametrize("path", ["/_fail/check", "/_fail/not-null"])
def test_other_constraint_violations_are_bad_request(failing_app, path):
    resp = failing_app.test_client().get(path)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Invalid data"}


def test_unexpected_error_is_sanitized(failing_app):
    resp = failing_app.test_client().get("/_fail/boom")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}
