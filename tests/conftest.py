"""
pytest configuration and fixtures for bit-string tests.

Provides reusable fixtures for:
- Bundled bit-string schemas
- Hypothesis property-based testing configuration
"""

import os
import sys
import pytest
from pathlib import Path

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

# Configure Hypothesis profiles
from hypothesis import settings, Verbosity, Phase

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

# Load profile from environment
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def schemas_dir():
    """Directory holding the bundled YAML schemas."""
    return SCHEMAS_DIR


@pytest.fixture
def tvr_schema_path():
    return SCHEMAS_DIR / "tvr.yaml"


@pytest.fixture
def cid_schema_path():
    return SCHEMAS_DIR / "cid.yaml"


@pytest.fixture
def two_field_schema():
    """Small in-memory schema with one single-bit and one two-bit field."""
    return {
        'name': 'sample',
        'tag': 'DF01',
        'length': 3,
        'fields': [
            {'label': 'V1', 'bits': ['(3,8)=1']},
            {'label': 'V2', 'bits': ['(2,8)=1', '(2,6)=1']},
        ],
        'test_vectors': [
            {'name': 'v1', 'payload': '000080', 'expected': ['V1']},
            {'name': 'both', 'payload': '00A080', 'expected': ['V1', 'V2']},
        ],
    }
