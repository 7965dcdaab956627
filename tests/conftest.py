import pytest

from contractdesk import create_app
from contractdesk.blueprints.api.utils import ASSETS_KEY, NOTIFIER_KEY
from contractdesk.config import Config
from contractdesk.extensions import db
from contractdesk.models.user import User
from contractdesk.schemas import QuotationCreate
from contractdesk.services.transactions import TransactionCoordinator

ADMIN_EMAIL = "admin@contractdesk.in"
STAFF_EMAIL = "staff@contractdesk.in"
PASSWORD = "s3cret-pass"


class RecordingNotifier:
    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, message, action="default"):
        self.sent.append({"to": to, "message": message, "action": action})
        return not self.fail


class RecordingAssets:
    def __init__(self):
        self.saved = []
        self.deleted = []
        self.fail_delete = False

    def save_upload(self, file_storage, subdir=""):
        public_id = f"{subdir}/{file_storage.filename}" if subdir else file_storage.filename
        self.saved.append(public_id)
        return {"url": f"/uploads/{public_id}", "public_id": public_id}

    def delete_upload(self, public_id):
        self.deleted.append(public_id)
        return not self.fail_delete


def quotation_input(**overrides) -> dict:
    data = {
        "client_name": "Ravi Kumar",
        "client_address": "12 MG Road, Bengaluru",
        "client_phone": "9876543210",
        "date": "2024-05-01",
        "line_items": [{"description": "Wall painting", "area": 100, "rate": 100, "total": 10000}],
        "subtotal": 10000,
        "discount": 0,
        "grand_total": 10000,
        "terms": ["50% advance"],
    }
    data.update(overrides)
    return data


@pytest.fixture
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"
        WTF_CSRF_ENABLED = False
        SESSION_COOKIE_SECURE = False
        LOG_DIR = str(tmp_path / "logs")
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        EXTERNAL_BASE_URL = "https://contractdesk.in"
        NOTIFY_SUPPRESS_SEND = True
        SENTRY_DSN = ""

    app = create_app(TestConfig)
    app.extensions[NOTIFIER_KEY] = RecordingNotifier()
    app.extensions[ASSETS_KEY] = RecordingAssets()

    with app.app_context():
        db.create_all()
        for email, role in ((ADMIN_EMAIL, "admin"), (STAFF_EMAIL, "staff")):
            user = User(name=role.title(), email=email, role=role)
            user.set_password(PASSWORD)
            db.session.add(user)
        db.session.commit()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield
        db.session.remove()


@pytest.fixture
def admin_id(app):
    with app.app_context():
        return User.query.filter_by(email=ADMIN_EMAIL).one().id


@pytest.fixture
def notifier(app):
    return app.extensions[NOTIFIER_KEY]


@pytest.fixture
def assets(app):
    return app.extensions[ASSETS_KEY]


@pytest.fixture
def coordinator(ctx, notifier, assets):
    return TransactionCoordinator(
        db.session,
        notifier=notifier,
        assets=assets,
        base_url="https://contractdesk.in",
        currency="₹",
    )


@pytest.fixture
def accepted(coordinator, admin_id):
    """A 10000 quotation that has been accepted, with its project and invoice."""
    created = coordinator.create_quotation(QuotationCreate.model_validate(quotation_input()), admin_id)
    return coordinator.change_status(created.quotation["number"], "accepted", admin_id)


def _login(app, email):
    client = app.test_client()
    resp = client.post("/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return client


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    return _login(app, ADMIN_EMAIL)


@pytest.fixture
def staff_client(app):
    return _login(app, STAFF_EMAIL)
