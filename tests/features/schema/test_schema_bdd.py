"""BDD tests for schema evolution."""

import pytest
from pytest_bdd import scenarios

scenarios("schema_evolution.feature")

pytestmark = [
    pytest.mark.tier(1),
    pytest.mark.tra("Registry.SchemaEvolution"),
]
