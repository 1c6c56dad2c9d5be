from __future__ import annotations

from opsettings.errors import StoreUnavailable
from opsettings.ui.tui.state import (
    ActionSpec,
    ActionState,
    ControlBinding,
    GateState,
    PanelModel,
    stepper,
    toggle,
)


class _DeferredExecutor:
    def __init__(self) -> None:
        self.pending = []

    def submit(self, fn, done) -> None:
        self.pending.append((fn, done))

    def finish(self) -> None:
        fn, done = self.pending.pop(0)
        done(fn(), None)


def _panel(store, executor=None) -> PanelModel:
    panel = PanelModel("developer", "Developer", store, executor=executor)
    panel.add_section("UI Settings")
    panel.add_label("car_model", "Car Recognition", lambda: store.get_str("CarModel"))
    panel.add_binding(ControlBinding(toggle("OpkrApksEnable", "Enable Apks"), store))
    panel.add_binding(ControlBinding(stepper("OpkrUIBrightness", "Brightness", 0, 100, step=5), store))
    return panel


def _counter(calls: list[str], name: str, status: int = 0):
    def _run() -> int:
        calls.append(name)
        return status

    return _run


def test_show_returns_controls_labels_and_actions(store) -> None:
    calls: list[str] = []
    panel = _panel(store)
    panel.add_action(ActionSpec("delete_recordings", "Delete All Recordings", "EXECUTE", _counter(calls, "rm"), prompt="Sure?"))
    store.put("CarModel", "GENESIS")

    values = panel.show()

    assert values["car_model"] == "GENESIS"
    assert values["setting-OpkrApksEnable"].value is False
    assert values["setting-OpkrUIBrightness"].text == "0"
    assert values["delete_recordings"] == ActionState(text="EXECUTE", enabled=True, visible=True)


def test_apply_input_returns_dependents(store) -> None:
    panel = _panel(store)

    result, dependents = panel.apply_input("OpkrApksEnable", True)

    assert result.handled
    assert dependents["setting-OpkrApksEnable"].value is True
    assert store.get_bool("OpkrApksEnable")


def test_apply_input_invalid_value_keeps_store(store) -> None:
    panel = _panel(store)

    result, dependents = panel.apply_input("OpkrUIBrightness", 7)

    assert result.handled is False
    assert store.get("OpkrUIBrightness") is None
    assert dependents["setting-OpkrUIBrightness"].value == 0


def test_step_at_bound_reports_nothing_to_refresh(store) -> None:
    panel = _panel(store)

    result, dependents = panel.step("OpkrUIBrightness", -1)

    assert result.handled is False
    assert dependents == {}

    result, dependents = panel.step("OpkrUIBrightness", 1)
    assert result.value == 5
    assert dependents["setting-OpkrUIBrightness"].text == "5"


def test_unknown_binding_and_action(store) -> None:
    panel = _panel(store)
    try:
        panel.binding("Nope")
    except KeyError as exc:
        assert "Nope" in str(exc)
    else:
        raise AssertionError("expected KeyError")
    try:
        panel.action("nope")
    except KeyError:
        pass
    else:
        raise AssertionError("expected KeyError")


def test_guarded_action_cancel_runs_nothing(store) -> None:
    calls: list[str] = []
    panel = _panel(store)
    panel.add_action(ActionSpec("reboot", "Reboot", "REBOOT", _counter(calls, "reboot"), prompt="Reboot?"))

    assert panel.trigger("reboot") == "Reboot?"
    result = panel.cancel("reboot")

    assert result.outcome == "cancelled"
    assert calls == []
    assert panel.action("reboot").gate.state is GateState.IDLE


def test_unguarded_action_runs_on_trigger(store) -> None:
    calls: list[str] = []
    results = []
    panel = _panel(store)
    panel.on_result = results.append
    panel.add_action(ActionSpec("preview", "Preview", "PREVIEW", _counter(calls, "preview")))

    assert panel.trigger("preview") is None
    assert calls == ["preview"]
    assert results[0].ok


def test_executing_action_is_disabled_until_done(store) -> None:
    calls: list[str] = []
    executor = _DeferredExecutor()
    panel = _panel(store, executor)
    panel.add_action(ActionSpec("reboot", "Reboot", "REBOOT", _counter(calls, "reboot"), prompt="Reboot?"))

    panel.trigger("reboot")
    panel.confirm("reboot")

    assert panel.action_state("reboot").enabled is False
    assert panel.trigger("reboot") is None

    executor.finish()

    assert calls == ["reboot"]
    assert panel.action_state("reboot").enabled is True


def test_inline_actions_ignore_panel_executor(store) -> None:
    calls: list[str] = []
    executor = _DeferredExecutor()
    panel = _panel(store, executor)
    panel.add_action(ActionSpec("uninstall", "Uninstall", "UNINSTALL", _counter(calls, "uninstall"), inline=True))
    panel.add_action(ActionSpec("reboot", "Reboot", "REBOOT", _counter(calls, "reboot")))

    replacement = _DeferredExecutor()
    panel.executor = replacement
    panel.trigger("uninstall")
    panel.trigger("reboot")

    assert calls == ["uninstall"]
    assert executor.pending == []
    assert len(replacement.pending) == 1


def test_offroad_only_and_hidden_actions(store) -> None:
    panel = _panel(store)
    panel.add_action(
        ActionSpec("review_training", "Review", "REVIEW", lambda: 0, offroad_only=True, hidden_when="Passive")
    )

    assert panel.action_state("review_training").enabled

    store.put_bool("IsOffroad", False)
    assert panel.action_state("review_training").enabled is False
    assert panel.trigger("review_training") is None

    store.put_bool("Passive", True)
    assert panel.action_state("review_training").visible is False


def test_result_hooks_run_before_panel_listener(store) -> None:
    order: list[str] = []
    panel = _panel(store)
    panel.on_result = lambda result: order.append("panel")
    panel.add_action(
        ActionSpec("git_reset", "Git Reset", "EXECUTE", lambda: 1),
        on_result=lambda result: order.append(f"hook:{result.outcome}"),
    )

    panel.trigger("git_reset")

    assert order == ["hook:failed", "panel"]


def test_request_prompt_notifies_listener(store) -> None:
    prompts = []
    panel = _panel(store)
    panel.on_prompt = lambda action_id, prompt: prompts.append((action_id, prompt))
    item = panel.add_action(ActionSpec("apply_update", "Apply", "OK", lambda: 0, prompt="Apply?", listed=False))

    assert panel.request_prompt("apply_update", item.spec.pending()) == "Apply?"
    assert panel.request_prompt("apply_update", item.spec.pending()) is None
    assert prompts == [("apply_update", "Apply?")]


def test_teardown_stops_coordinator(store) -> None:
    panel = _panel(store)
    panel.teardown()
    assert panel.coordinator.alive is False


def test_action_that_cannot_start_returns_gate_to_idle(store) -> None:
    calls: list[str] = []
    results = []
    panel = _panel(store)
    panel.on_result = results.append

    def _start() -> None:
        raise StoreUnavailable("Parameter store not found")

    panel.add_action(ActionSpec("check", "Check for Update", "CHECK", _counter(calls, "fetch"), on_start=_start))

    assert panel.trigger("check") is None

    assert calls == []
    assert panel.action("check").gate.state is GateState.IDLE
    assert panel.action_state("check").enabled is True
    assert results[0].outcome == "failed"
    assert "Parameter store not found" in results[0].error


def test_guarded_start_failure_is_reported_by_confirm(store) -> None:
    panel = _panel(store)

    def _start() -> None:
        raise StoreUnavailable("gone")

    panel.add_action(ActionSpec("reboot", "Reboot", "REBOOT", lambda: 0, prompt="Reboot?", on_start=_start))
    panel.trigger("reboot")

    result = panel.confirm("reboot")

    assert result.outcome == "failed"
    assert panel.trigger("reboot") == "Reboot?"


def test_results_after_teardown_are_dropped(store) -> None:
    calls: list[str] = []
    results = []
    hooked = []
    executor = _DeferredExecutor()
    panel = _panel(store, executor)
    panel.on_result = results.append
    panel.add_action(
        ActionSpec("reboot", "Reboot", "REBOOT", _counter(calls, "reboot"), prompt="Reboot?"),
        on_result=hooked.append,
    )
    panel.trigger("reboot")
    panel.confirm("reboot")

    panel.teardown()
    executor.finish()

    assert calls == ["reboot"]
    assert results == []
    assert hooked == []
    assert panel.action("reboot").gate.state is GateState.IDLE


def test_request_prompt_after_teardown_is_ignored(store) -> None:
    prompts = []
    panel = _panel(store)
    panel.on_prompt = lambda action_id, prompt: prompts.append(prompt)
    item = panel.add_action(ActionSpec("apply_update", "Apply", "OK", lambda: 0, prompt="Apply?", listed=False))
    panel.teardown()

    assert panel.request_prompt("apply_update", item.spec.pending()) is None
    assert prompts == []
    assert item.gate.state is GateState.IDLE
