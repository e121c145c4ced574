"""Tests for the command registry."""

from kubehop import actions
from kubehop.commands import build_registry
from kubehop.models import CommandTemplate
from kubehop.services.registry import CommandRegistry


class TestCommandRegistry:
    """Tests for CommandRegistry."""

    def test_register_and_lookup(self) -> None:
        """Registered templates are returned by lookup."""
        registry = CommandRegistry()
        template = CommandTemplate(commands=["uptime"])
        registry.register("uptime", template)

        assert registry.lookup("uptime") is template
        assert "uptime" in registry
        assert len(registry) == 1

    def test_lookup_unknown(self) -> None:
        """Unknown actions look up as None."""
        assert CommandRegistry().lookup("missing") is None

    def test_reregister_replaces(self) -> None:
        """Registering the same name twice keeps the second template."""
        registry = CommandRegistry()
        registry.register("x", CommandTemplate(commands=["a"]))
        second = CommandTemplate(commands=["b"])
        registry.register("x", second)

        assert registry.lookup("x") is second
        assert len(registry) == 1

    def test_actions_sorted(self) -> None:
        """actions lists names alphabetically."""
        registry = CommandRegistry()
        registry.register("b", CommandTemplate())
        registry.register("a", CommandTemplate())
        assert registry.actions == ["a", "b"]

    def test_instances_are_independent(self) -> None:
        """Registries do not share state."""
        first = CommandRegistry()
        first.register("x", CommandTemplate())
        assert "x" not in CommandRegistry()


class TestBuiltinRegistry:
    """Tests for the populated registry."""

    def test_every_action_registered(self) -> None:
        """build_registry registers every named action."""
        registry = build_registry()
        names = [
            value
            for key, value in vars(actions).items()
            if key.isupper() and isinstance(value, str) and value != actions.CUSTOM
        ]
        for name in names:
            assert name in registry, name
        assert actions.CUSTOM not in registry

    def test_every_template_described(self) -> None:
        """Each built-in template has a description."""
        registry = build_registry()
        for name in registry.actions:
            template = registry.lookup(name)
            assert template is not None
            assert template.description, name
