from crmflow.domain.errors import UnknownActionError

from .base import ActionEffect
from .builtin import BUILTIN_ACTIONS


class ActionRegistry:
    """Maps action identifiers to effect instances.

    Instance-scoped: each executor owns its registry, so registering a custom
    effect never leaks into other executors.
    """

    def __init__(self) -> None:
        self._effects: dict[str, ActionEffect] = {}

    @classmethod
    def with_builtins(cls) -> "ActionRegistry":
        registry = cls()
        for effect_class in BUILTIN_ACTIONS:
            registry.register(effect_class.name, effect_class())
        return registry

    def register(self, key: str, effect: ActionEffect) -> None:
        self._effects[key] = effect

    def get(self, key: str) -> ActionEffect:
        """Look up an effect.

        Raises:
            UnknownActionError: If ``key`` is not registered
        """
        effect = self._effects.get(key)
        if effect is None:
            raise UnknownActionError(key)
        return effect

    def __contains__(self, key: object) -> bool:
        return key in self._effects

    def list_actions(self) -> list[str]:
        return sorted(self._effects)
