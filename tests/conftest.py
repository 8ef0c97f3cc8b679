from tests.fixtures.app_fixtures import app_settings, client, fresh_settings  # noqa: F401
from tests.fixtures.k8s_fixtures import fake_kubectl, overlay_root  # noqa: F401
