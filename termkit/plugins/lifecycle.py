"""Plugin lifecycle management - handles single-plugin state transitions.

    registered -> loaded -> enabled <-> disabled -> unloaded

A loaded plugin that was never enabled may unload directly. Any callback
failure moves the plugin to ERRORED. Dependency ordering across plugins
is the host's job; this module only guards one plugin.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from termkit.plugins.errors import ConfigError, InvalidTransition, LifecycleCallbackFailed
from termkit.plugins.registry import PluginInstance, PluginState
from termkit.plugins.validator import ConfigValidator

logger = logging.getLogger(__name__)

# phase -> (allowed source states, target state)
TRANSITIONS: Dict[str, Tuple[Tuple[PluginState, ...], PluginState]] = {
    "load": ((PluginState.REGISTERED,), PluginState.LOADED),
    "enable": ((PluginState.LOADED, PluginState.DISABLED), PluginState.ENABLED),
    "disable": ((PluginState.ENABLED,), PluginState.DISABLED),
    "unload": ((PluginState.LOADED, PluginState.DISABLED), PluginState.UNLOADED),
}

CallbackInvoker = Callable[[str, Callable[..., Any], Any], Any]


def _direct_invoke(plugin_id: str, callback: Callable[..., Any], argument: Any) -> Any:
    return callback(argument)


class PluginLifecycle:
    """Manages plugin state transitions: load -> enable -> disable -> unload."""

    def __init__(self, validator: Optional[ConfigValidator] = None, invoker: Optional[CallbackInvoker] = None):
        self.validator = validator or ConfigValidator()
        self._invoke = invoker or _direct_invoke

    def can_transition(self, instance: PluginInstance, phase: str) -> bool:
        """Whether phase is valid from the instance's state (or, if errored, its last stable state)."""
        sources, _ = TRANSITIONS[phase]
        state = instance.stable_state if instance.state == PluginState.ERRORED else instance.state
        return state in sources and instance.in_flight is None

    def load(self, instance: PluginInstance) -> bool:
        """Call on_load. Returns True if the plugin reached LOADED."""
        return self._transition(instance, "load")

    def enable(self, instance: PluginInstance) -> bool:
        """Validate config, then call on_enable. Returns True if the plugin reached ENABLED."""
        return self._transition(instance, "enable", before=self._validate_config)

    def disable(self, instance: PluginInstance) -> bool:
        """Call on_disable. Returns True if the plugin reached DISABLED."""
        return self._transition(instance, "disable")

    def unload(self, instance: PluginInstance) -> bool:
        """Call on_unload. Returns True if the plugin reached UNLOADED."""
        return self._transition(instance, "unload")

    def _validate_config(self, instance: PluginInstance) -> None:
        descriptor = instance.descriptor
        self.validator.validate(descriptor.config, descriptor.config_schema, descriptor.id)

    def _transition(
        self,
        instance: PluginInstance,
        phase: str,
        before: Optional[Callable[[PluginInstance], None]] = None,
    ) -> bool:
        sources, target = TRANSITIONS[phase]

        if instance.in_flight is not None:
            error = InvalidTransition(instance.id, f"{instance.state.value} ({instance.in_flight} in progress)", phase)
            logger.error(str(error))
            raise error

        if instance.state == PluginState.ERRORED:
            if instance.stable_state not in sources:
                raise InvalidTransition(instance.id, instance.state, phase)
            logger.info(
                f"Retrying plugin {instance.id}: {phase} from {instance.stable_state.value} "
                f"(previous error: {instance.error})"
            )
            instance.state = instance.stable_state
            instance.error = None

        if instance.state not in sources:
            raise InvalidTransition(instance.id, instance.state, phase)

        instance.in_flight = phase
        try:
            if before is not None:
                before(instance)

            callback = instance.descriptor.callback(phase)
            if callback is not None:
                result = self._invoke(instance.id, callback, instance.descriptor)
                if result is False:
                    raise RuntimeError(f"on_{phase} returned False")

        except ConfigError as e:
            self._fail(instance, e)
            logger.error(f"Plugin {instance.id} config rejected: {e}")
            return False

        except Exception as e:
            error = LifecycleCallbackFailed(instance.id, phase, e)
            self._fail(instance, error)
            logger.error(f"Failed to {phase} plugin {instance.id}: {e}")
            return False

        finally:
            instance.in_flight = None

        instance.state = target
        instance.stable_state = target
        instance.error = None
        logger.info(f"Plugin {instance.id}: {target.value}")
        return True

    @staticmethod
    def _fail(instance: PluginInstance, error) -> None:
        instance.state = PluginState.ERRORED
        instance.error = error
