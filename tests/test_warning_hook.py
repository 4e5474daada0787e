"""Tests for promoting runtime warnings to request faults."""

import warnings

import pytest

from perfsim.core import warning_hook
from perfsim.core.errors import WarningFault


@pytest.fixture(autouse=True)
def fresh_hook(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(warning_hook, "_installed", False)
    monkeypatch.setattr(warning_hook, "_enabled_categories", ())
    with warnings.catch_warnings():
        yield


def test_enabled_category_raises_fault_at_call_site() -> None:
    warning_hook.install_warning_hook((RuntimeWarning,))

    with pytest.raises(WarningFault) as exc_info:
        warnings.warn("overflow in cast", RuntimeWarning)

    fault = exc_info.value
    assert str(fault) == "overflow in cast"
    assert fault.category is RuntimeWarning
    assert fault.filename.endswith("test_warning_hook.py")
    assert fault.lineno > 0


def test_subclass_of_enabled_category_is_promoted() -> None:
    warning_hook.install_warning_hook((Warning,))

    with pytest.raises(WarningFault):
        warnings.warn("going away", DeprecationWarning)


def test_disabled_category_is_dropped() -> None:
    warning_hook.install_warning_hook((UserWarning,))

    warnings.warn("ignored", DeprecationWarning)


def test_hook_installs_only_once() -> None:
    assert warning_hook.install_warning_hook((UserWarning,)) is True
    assert warning_hook.install_warning_hook((DeprecationWarning,)) is False

    # The first configuration stays in force
    warnings.warn("still dropped", DeprecationWarning)
    with pytest.raises(WarningFault):
        warnings.warn("promoted", UserWarning)


def test_handle_warning_directly() -> None:
    warning_hook._enabled_categories = (UserWarning,)

    with pytest.raises(WarningFault) as exc_info:
        warning_hook.handle_warning(UserWarning("direct"), UserWarning, "/tmp/x.py", 7)
    assert exc_info.value.lineno == 7

    assert warning_hook.handle_warning("quiet", ResourceWarning, "/tmp/x.py", 8) is None


def test_resolve_warning_categories_skips_unknown_names() -> None:
    resolved = warning_hook.resolve_warning_categories(["UserWarning", "NotAWarning", "ValueError"])
    assert resolved == (UserWarning,)
