"""BDD tests for the end-to-end telemetry pipeline."""

import pytest
from pytest_bdd import scenarios

scenarios(".")

pytestmark = [pytest.mark.integration, pytest.mark.tier(3)]
