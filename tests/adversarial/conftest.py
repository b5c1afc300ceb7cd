"""
Shared configuration for adversarial tests.

Registry fixtures come from the top-level conftest (in-memory adapters).
"""

import pytest

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial
