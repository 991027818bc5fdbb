import pytest

from kardex.auth import Actor, get_current_actor
from kardex.main import app


TEST_ORG = "org-test"


@pytest.fixture(autouse=True)
def override_auth(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_current_actor] = lambda: Actor(actor_id="cashier-1", org_id=TEST_ORG)
    yield
    app.dependency_overrides.pop(get_current_actor, None)
