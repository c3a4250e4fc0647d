"""
Integration tests: theme palettes end to end

Exercises scopes, inheritance, functions, both update modes and
notifications together the way a theming UI drives the engine.
"""

import pytest
from unittest.mock import Mock

from colorrouter import (
    CircularDependencyError,
    DefinitionKind,
    EngineConfig,
    ResolutionEngine,
)


def lighten(color, amount):
    return f"lighten({color},{amount})"


def strongest(engine, scope):
    """Pick the member of `scope` with the longest resolved value."""
    values = [engine.resolve(k) for k in engine.get_all_keys_for_scope(scope)]
    return max(values, key=len) if values else None


@pytest.fixture
def palette():
    engine = ResolutionEngine(normalizer=str.lower)
    engine.register_value_modifier("lighten", lighten)
    engine.register_scope_selector("strongest", strongest)

    engine.create_scope("brand")
    engine.define("brand.primary", "#3366FF")
    engine.define("brand.secondary", "#FF9900")

    engine.create_scope("light")
    engine.define("light.bg", "#FFFFFF")
    engine.define("light.accent", engine.ref("brand.primary"))
    engine.define("light.hover", engine.call("lighten", "light.accent", 0.2))
    engine.define("light.highlight", engine.call("strongest", "brand"))

    engine.create_scope("dark", extends="light", overrides={"bg": "#111111"})
    return engine


class TestThemePipeline:
    """A brand palette feeding light and dark themes."""

    def test_initial_resolution(self, palette):
        assert palette.resolve_scope("light") == {
            "bg": "#ffffff",
            "accent": "#3366ff",
            "hover": "lighten(#3366ff,0.2)",
            "highlight": "#3366ff",
        }
        assert palette.resolve("dark.bg") == "#111111"
        assert palette.resolve("dark.hover") == "lighten(#3366ff,0.2)"

    def test_brand_change_reaches_every_theme(self, palette):
        """One brand edit updates light and the tokens dark inherits."""
        palette.resolve_scope("dark")
        events = Mock()
        dark_hover = Mock()
        palette.on_change(events)
        palette.watch("dark.hover", dark_hover)

        palette.set("brand.primary", "#00AA00")

        changed = [c.key for c in events.call_args[0][0]]
        assert changed[0] == "brand.primary"
        assert {"light.accent", "light.hover", "dark.accent", "dark.hover"} <= set(changed)
        assert changed.index("light.accent") < changed.index("light.hover")
        events.assert_called_once()
        dark_hover.assert_called_once_with("lighten(#00aa00,0.2)", "lighten(#3366ff,0.2)")

    def test_dark_override_after_the_fact(self, palette):
        """Overriding an inherited key detaches it from the parent."""
        palette.resolve("dark.accent")
        palette.define("dark.accent", "#FF00FF")
        palette.set("brand.primary", "#000000")

        assert palette.resolve("dark.accent") == "#ff00ff"
        assert palette.resolve("light.accent") == "#000000"

    def test_bulk_edit_in_batch_mode(self, palette):
        """Several edits are applied in one flush with one notification."""
        events = Mock()
        palette.on_change(events)

        palette.mode = "batch"
        palette.set("brand.primary", "#123456")
        palette.set("light.bg", "#FAFAFA")
        palette.define("brand.tertiary", "#ABCDEF0")
        report = palette.flush()
        palette.mode = "auto"

        events.assert_called_once()
        assert report.errors == []
        assert report.processed_keys.index("brand.primary") < report.processed_keys.index("light.accent")
        assert palette.resolve("light.hover") == "lighten(#123456,0.2)"
        assert palette.resolve("light.highlight") == "#abcdef0"

    def test_cycle_rejected_without_damage(self, palette):
        """A cyclic edit is refused and the palette keeps resolving."""
        snapshot = palette.resolve_scope("light")

        with pytest.raises(CircularDependencyError):
            palette.set("brand.primary", palette.ref("light.hover"))

        assert palette.resolve_scope("light") == snapshot
        assert palette.get_definition_type("brand.primary") == DefinitionKind.LITERAL

    def test_copy_and_delete_theme(self, palette):
        """A copied theme is independent of its source."""
        palette.copy_scope("dark", "contrast")
        palette.set("contrast.bg", "#000000")

        assert palette.get_scope("contrast").extends is None
        assert palette.resolve("contrast.bg") == "#000000"
        assert palette.resolve("dark.bg") == "#111111"

        removed = palette.delete_scope("contrast")
        assert "contrast.bg" in removed
        assert not palette.has_scope("contrast")

    def test_renderer_queries(self, palette):
        """Read-only views a diagram renderer would use."""
        assert palette.get_visual_dependencies("light.highlight") == {"scope:brand"}
        assert palette.get_scope_dependencies("light") == ["brand.primary", "brand.secondary"]
        graph = palette.get_connection_graph()
        assert "light.accent" in graph["brand.primary"]
        assert palette.describe(palette.get_definition_for_key("light.hover")) == (
            "lighten('light.accent', 0.2)"
        )


class TestEnvironmentConfiguredEngine:
    """Engine built from environment settings."""

    def test_batch_engine_from_env(self, monkeypatch):
        monkeypatch.setenv("COLORROUTER_MODE", "batch")
        engine = ResolutionEngine(config=EngineConfig.from_env())
        engine.create_scope("base")
        engine.define("base.a", "#fff")

        assert engine.batch_queue_size == 1
        report = engine.flush()
        assert report.changed_keys == ["base.a"]
