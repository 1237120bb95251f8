"""Updater types named in updaters.json, mapped to the classes that implement them."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vulnsync.driver.updater import Updater

_REGISTRY: dict[str, type[Updater]] = {}


def register_updater(type_name: str, cls: type[Updater]) -> None:
    """Make ``cls`` available to the ``type`` field of updaters.json entries."""
    _REGISTRY[type_name] = cls


def get_updater_class(type_name: str) -> type[Updater] | None:
    """Class for an updaters.json ``type``, or None if nothing registered it."""
    return _REGISTRY.get(type_name)


def registered_types() -> list[str]:
    """Every updater type an updaters.json entry may name, sorted."""
    return sorted(_REGISTRY)
