from bridge_agent import ACTION_REGISTRY
from data_models import BridgeAction

# Test Protocol for the action registry

def test_QLT_MNT_001_every_action_has_a_handler():
    """
    Tests QLT-MNT-001: The action registry covers the closed BridgeAction set.
    """
    assert set(ACTION_REGISTRY) == set(BridgeAction)
    assert len(set(ACTION_REGISTRY.values())) == len(BridgeAction)
