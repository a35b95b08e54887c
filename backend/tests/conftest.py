"""
Pytest fixtures for Weblarek backend tests.

Provides test database setup, user/product fixtures, and test client.
"""

import pytest
from weblarek import create_app
from weblarek.extensions import db
from weblarek.models import Product, ROLE_ADMIN, ROLE_CUSTOMER
from weblarek.services import auth_service, token_service

PASSWORD = "secret1"


@pytest.fixture(scope='session')
def public_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("public")


@pytest.fixture(scope='session')
def app(public_dir):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'PUBLIC_DIR': str(public_dir),
        'ACCESS_TOKEN_SECRET': 'test-access-secret',
        'REFRESH_TOKEN_SECRET': 'test-refresh-secret',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer with the default role set."""
    return auth_service.register_user("customer@example.com", PASSWORD, name="Customer")


@pytest.fixture(scope='function')
def other_customer(db_session):
    return auth_service.register_user("other@example.com", PASSWORD, name="Other")


@pytest.fixture(scope='function')
def admin(db_session):
    """Customer that also holds the admin role."""
    return auth_service.register_user(
        "admin@example.com", PASSWORD, name="Admin", roles=[ROLE_CUSTOMER, ROLE_ADMIN]
    )


def make_product(db_session, title: str, price, image: str = "/images/stub.png") -> Product:
    product = Product(
        title=title,
        category="софт-скил",
        description=f"{title} description",
        price=price,
        image_file_name=image,
        image_original_name="stub.png",
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product_10(db_session):
    return make_product(db_session, "Ten", 10)


@pytest.fixture(scope='function')
def product_20(db_session):
    return make_product(db_session, "Twenty", 20)


@pytest.fixture(scope='function')
def product_unpriced(db_session):
    """Listed but not for sale."""
    return make_product(db_session, "Priceless", None)


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user) -> dict:
    return auth_headers(token_service.issue_access_token(user))


@pytest.fixture(scope='function')
def customer_headers(customer):
    return headers_for(customer)


@pytest.fixture(scope='function')
def admin_headers(admin):
    return headers_for(admin)


def login(client, email: str, password: str = PASSWORD):
    """Helper to log in through the API. Returns the response."""
    return client.post('/auth/login', json={'email': email, 'password': password})


def order_payload(items, total, **overrides) -> dict:
    payload = {
        'items': items,
        'total': total,
        'payment': 'card',
        'email': 'customer@example.com',
        'phone': '+71234567890',
        'address': 'Spb, Vosstania 1',
    }
    payload.update(overrides)
    return payload
