import pytest

from debenture_node.runtime.access import OwnerAccessControl
from debenture_node.runtime.clock import ManualClock
from debenture_node.runtime.events import EventLog
from debenture_node.runtime.governance import GovernanceEngine
from debenture_node.runtime.state import StateLedger
from debenture_node.runtime.token import ReferenceToken
from debenture_node.runtime.vault import ShareVault

OWNER = "@owner"
VAULT = "@vault"
USERS = ("@alice", "@bob", "@carol", "@dave")
START_BALANCE = 1_000_000


@pytest.fixture
def ledger():
    return StateLedger()


@pytest.fixture
def events(ledger):
    log = EventLog()
    ledger.add_event_listener(log.publish)
    return log


@pytest.fixture
def clock():
    return ManualClock(start=1_700_000_000)


@pytest.fixture
def token(ledger):
    """Reference asset with every test user funded and the vault pre-approved."""
    tok = ReferenceToken(ledger, symbol="DAI")
    for user in USERS:
        tok.mint(user, START_BALANCE)
        tok.approve(user, VAULT, START_BALANCE * 1000)
    return tok


@pytest.fixture
def access(ledger):
    return OwnerAccessControl(ledger, owner=OWNER)


@pytest.fixture
def vault(ledger, token, access, events):
    return ShareVault(ledger, token.handle(VAULT), access, address=VAULT)


@pytest.fixture
def engine(ledger, token, clock, events):
    """Governance weighted directly by the reference asset."""
    return GovernanceEngine(ledger, token, clock)
