"""
ColorRouter Test Configuration and Fixtures
"""

import pytest

from colorrouter.engine.resolution import ResolutionEngine


@pytest.fixture
def engine():
    """Auto-mode engine with an empty `base` scope."""
    eng = ResolutionEngine()
    eng.create_scope("base")
    return eng


@pytest.fixture
def batch_engine():
    """Batch-mode engine with an empty `base` scope."""
    eng = ResolutionEngine(mode="batch")
    eng.create_scope("base")
    return eng


@pytest.fixture
def themed_engine():
    """
    Engine with a `light` scope and a `dark` scope extending it.

    light.bg = #ffffff, light.fg = ref(light.bg), dark.bg = #000000
    """
    eng = ResolutionEngine()
    eng.create_scope("light")
    eng.define("light.bg", "#ffffff")
    eng.define("light.fg", eng.ref("light.bg"))
    eng.create_scope("dark", extends="light", overrides={"bg": "#000000"})
    return eng
