import os, sys, pytest
# Ensure backend directory is on path so 'storefront' can be imported without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from storefront import create_app, get_db
from storefront.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import storefront.models.audit  # noqa: F401
import storefront.models.catalog  # noqa: F401
import storefront.models.content  # noqa: F401
import storefront.models.currency  # noqa: F401
import storefront.models.discount  # noqa: F401
import storefront.models.item  # noqa: F401
import storefront.models.order  # noqa: F401
import storefront.models.upload  # noqa: F401
import storefront.models.warehouse  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance(tmp_path_factory):
    upload_dir = tmp_path_factory.mktemp('uploads')
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
        'UPLOAD_DIR': str(upload_dir),
        'MAX_UPLOAD_BYTES': 1024 * 1024,
        'TESTING': True,
    })
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()
