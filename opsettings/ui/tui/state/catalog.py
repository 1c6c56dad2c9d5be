"""
Settings catalog.

Every panel is described here as data: section headers, read-only labels,
parameter descriptors and guarded actions. ``build_panels`` turns the table
into ``PanelModel`` instances wired to a store, a command runner and the
shared UI state.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from opsettings.config.models import SettingsConfig
from opsettings.logging import get_logger
from opsettings.params.calibration import CALIBRATION_PARAM, calibration_text
from opsettings.params.store import ParamStore
from opsettings.system.commands import CommandDescriptor, CommandRunner
from opsettings.system.watcher import FileWatcher

from .app_state import UIState
from .binding import ControlBinding, ControlDescriptor, VisibilityRule, stepper, toggle
from .gate import ActionExecutor
from .panels import ActionSpec, PanelModel
from .refresh import RefreshCoordinator
from .software import UpdateCheckFlow, git_remote_text, short_commit

logger = get_logger(__name__)


@dataclass(frozen=True)
class Section:
    title: str


@dataclass(frozen=True)
class Label:
    """Read-only text, either a raw parameter or a named source."""

    label_id: str
    title: str
    param: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class Action:
    """A button; runs ``command`` or a named ``handler``."""

    action_id: str
    title: str
    button_text: str
    prompt: Optional[str] = None
    description: str = ""
    command: Optional[str] = None
    handler: Optional[str] = None
    offroad_only: bool = False
    hidden_when: Optional[str] = None
    requires: Optional[str] = None
    inline: bool = False


@dataclass(frozen=True)
class UpdateCheck:
    """Placeholder for the check-for-update button and its apply prompt."""


Entry = Union[Section, Label, ControlDescriptor, Action, UpdateCheck]


@dataclass(frozen=True)
class PanelSpec:
    panel_id: str
    title: str
    entries: tuple[Entry, ...]


@dataclass
class ActionContext:
    """Collaborators shared by every catalog action."""

    store: ParamStore
    runner: CommandRunner
    config: SettingsConfig
    ui_state: UIState
    sleep: Callable[[float], None] = time.sleep
    events: list[str] = field(default_factory=list)

    def command(self, name: str) -> CommandDescriptor:
        return CommandDescriptor.from_argv(name, self.config.command(name))

    def has_capability(self, name: Optional[str]) -> bool:
        if not name:
            return True
        if name == "tici":
            return self.config.device.is_tici
        if name == "maps":
            return self.config.device.maps_enabled
        logger.warning("Unknown capability '%s'", name)
        return False


CALIBRATION_HINT = "[Reference value: within L/R 4° and UP/DN 5°]"
SHOW_DRIVER_VIEW = "show_driver_view"
REVIEW_TRAINING_GUIDE = "review_training_guide"

LATERAL_CONTROL_PARAM = "LateralControlMethod"
PID_MODE = VisibilityRule(LATERAL_CONTROL_PARAM, ("0",), default="0")
INDI_MODE = VisibilityRule(LATERAL_CONTROL_PARAM, ("1",), default="0")
LQR_MODE = VisibilityRule(LATERAL_CONTROL_PARAM, ("2",), default="0")


DEVICE = PanelSpec(
    "device",
    "Device",
    (
        Label("dongle_id", "Dongle ID", param="DongleId"),
        Label("serial", "Serial", param="HardwareSerial"),
        Action(
            "driver_camera",
            "Driver Camera",
            "PREVIEW",
            description=(
                "Preview the driver facing camera to help optimize device mounting position "
                "for best driver monitoring experience. (vehicle must be off)"
            ),
            handler="driver_view",
            offroad_only=True,
            inline=True,
        ),
        Action(
            "calibration_status",
            "Reset Calibration",
            "RESET",
            prompt="calibration",
            description=(
                "openpilot requires the device to be mounted within 4° left or right and within "
                "5° up or down. openpilot is continuously calibrating, resetting is rarely required."
            ),
            handler="noop",
            offroad_only=True,
            inline=True,
        ),
        Action(
            "review_training",
            "Review Training Guide",
            "REVIEW",
            prompt="Are you sure you want to review the training guide?",
            description="Review the rules, features, and limitations of openpilot.",
            handler="review_training",
            offroad_only=True,
            hidden_when="Passive",
            inline=True,
        ),
        Action(
            "uninstall",
            "Uninstall",
            "UNINSTALL",
            prompt="Are you sure you want to uninstall?",
            handler="uninstall",
            offroad_only=True,
            inline=True,
        ),
        Section("Maintenance"),
        Action(
            "calibration_reset",
            "Calibration Reset",
            "RESET",
            prompt="Are you sure you want to reset calibration? The device will automatically reboot.",
            handler="calibration_reset",
        ),
        Action(
            "init_params",
            "Parameter Initialization",
            "RESET",
            prompt="Reset the parameters to their initial state. Are you sure you want to proceed?",
            command="init_params",
        ),
        Section("Presets"),
        Action("load_preset1", "Load Preset 1", "LOAD", prompt="Are you sure you want to load Preset 1?", command="load_preset1"),
        Action("save_preset1", "Save Preset 1", "SAVE", prompt="Are you sure you want to save Preset 1?", command="save_preset1"),
        Action("load_preset2", "Load Preset 2", "LOAD", prompt="Are you sure you want to load Preset 2?", command="load_preset2"),
        Action("save_preset2", "Save Preset 2", "SAVE", prompt="Are you sure you want to save Preset 2?", command="save_preset2"),
        Section("Power"),
        Action("reboot", "Reboot", "REBOOT", prompt="Are you sure you want to reboot?", command="reboot"),
        Action("poweroff", "Power Off", "POWER OFF", prompt="Are you sure you want to power off?", command="poweroff"),
    ),
)

NETWORK = PanelSpec(
    "network",
    "Network",
    (
        toggle("SshEnabled", "Enable SSH"),
        toggle(
            "OpkrSSHLegacy",
            "Use Existing Public Key",
            "When connecting via SSH, the existing public key (0.8.2 or lower) is used.",
        ),
        Label("github_user", "SSH Keys (GitHub username)", param="GithubUsername"),
        toggle("OpkrHotspotOnBoot", "Auto Launch Hotspot on Boot", "Automatically launch hotspot after booting."),
    ),
)

TOGGLES = PanelSpec(
    "toggles",
    "Toggles",
    (
        toggle(
            "OpenpilotEnabledToggle",
            "Enable openpilot",
            "Use the openpilot system for adaptive cruise control and lane keep driver assistance. "
            "Your attention is required at all times to use this feature. Changing this setting "
            "takes effect when the car is powered off.",
        ),
        toggle(
            "IsLdwEnabled",
            "Enable Lane Departure Warnings",
            "Receive alerts to steer back into the lane when your vehicle drifts over a detected "
            "lane line without a turn signal activated while driving over 31mph (50kph).",
        ),
        toggle(
            "IsRHD",
            "Enable Right-Hand Drive",
            "Allow openpilot to obey left-hand traffic conventions and perform driver monitoring "
            "on right driver seat.",
        ),
        toggle("IsMetric", "Use Metric System", "Display speed in km/h instead of mp/h."),
        toggle(
            "CommunityFeaturesToggle",
            "Enable Community Features",
            "Use features from the open source community that are not maintained or supported by "
            "comma.ai and have not been confirmed to meet the standard safety model. Be extra "
            "cautious when using these features.",
        ),
        toggle("UploadRaw", "Upload Raw Logs", "Upload full logs at my.comma.ai/useradmin (only works while on WiFi)."),
        toggle(
            "RecordFront",
            "Record and Upload Driver Camera",
            "Upload data from the driver facing camera and help improve the driver monitoring algorithm.",
            lock_key="RecordFrontLock",
        ),
        toggle(
            "EndToEndToggle",
            "Disable use of lanelines (Alpha)",
            "In this mode openpilot will ignore lanelines and just drive how it thinks a human would.",
        ),
        toggle(
            "EnableWideCamera",
            "Enable use of Wide Angle Camera",
            "Use wide angle camera for driving and ui.",
            clears_keys=(CALIBRATION_PARAM,),
            requires="tici",
        ),
        toggle("NavSettingTime24h", "Show ETA in 24h format", "Use 24h format instead of am/pm", requires="maps"),
        toggle("OpkrEnableDriverMonitoring", "Enable Driver Monitoring", "Use driver supervision monitoring."),
        toggle(
            "OpkrEnableLogger",
            "Enable Logger",
            "Record driving logs for data analysis locally. Only the logger is active and not "
            "uploaded to the server.",
        ),
        toggle(
            "OpkrEnableUploader",
            "Enable Uploader",
            "Activates the upload process to send system logs and other driving data to the "
            "server. Upload only in off-road conditions.",
        ),
        toggle(
            "CommaStockUI",
            "Enable Comma Stock UI",
            "Use the stock UI of comma for the driving screen.",
            publish=("comma_stock_ui",),
        ),
    ),
)

SOFTWARE = PanelSpec(
    "software",
    "Software",
    (
        Label("version", "Version", source="brand_version"),
        Label("git_remote", "Git Remote", source="git_remote"),
        Label("git_branch", "Git Branch", param="GitBranch"),
        Label("git_commit", "Git Commit", source="git_commit"),
        Label("os_version", "OS Version", source="os_version"),
        Label("last_update", "Check for Update", source="last_update"),
        UpdateCheck(),
        Label("commit_local", "Local Commit", source="git_commit"),
        Label("commit_remote", "Remote Commit", source="git_commit_remote"),
        Action(
            "git_reset",
            "Git Reset",
            "EXECUTE",
            prompt=(
                "After forcibly initializing local changes, the latest commit history of Remote "
                "Git is applied. Are you sure you want to proceed?"
            ),
            command="git_reset",
        ),
        Action(
            "git_pull_cancel",
            "Git Pull Cancel",
            "EXECUTE",
            prompt="GitPull will be reverted to the previous state. Are you sure you want to proceed?",
            command="git_pull_cancel",
        ),
        Action(
            "panda_flash",
            "Flash Panda",
            "CONFIRM",
            prompt=(
                "When the panda flashing is in progress, the green LED of the panda blinks quickly "
                "and automatically reboots when completed. Never turn off the power of the device "
                "or disconnect it arbitrarily. Are you sure you want to proceed?"
            ),
            command="panda_flash",
        ),
        toggle(
            "GitPullOnBoot",
            "Auto Git Pull at Boot",
            "If there is an update after booting, Git Pull is automatically executed and rebooted.",
        ),
    ),
)

_SHUTDOWN_CHOICES = (
    (0, "always on"),
    (1, "immediately"),
    (2, "30 s"),
    (3, "1 min"),
    (4, "3 min"),
    (5, "5 min"),
    (6, "10 min"),
    (7, "30 min"),
    (8, "1 h"),
    (9, "3 h"),
    (10, "5 h"),
)

DEVELOPER = PanelSpec(
    "developer",
    "Developer",
    (
        Section("UI Settings"),
        stepper("OpkrAutoShutdown", "Device Auto Shutdown Time", 0, 10, default=3, choices=_SHUTDOWN_CHOICES),
        stepper("OpkrForceShutdown", "Device Force Shutdown", 0, 10, default=5, unit=" min", choices=((0, "always on"),)),
        stepper("OpkrAutoScreenOff", "EON Screen Off", 0, 10, default=0, unit=" min", choices=((0, "always on"),)),
        stepper("OpkrUIVolumeBoost", "EON Volume Control", -5, 10, default=0, scale=10, unit="%", choices=((-5, "mute"), (0, "default"))),
        stepper("OpkrUIBrightness", "EON Brightness Control", 0, 100, step=5, default=0, unit="%", choices=((0, "auto"),)),
        toggle(
            "OpkrEnableGetoffAlert",
            "Enable Device Notification After Get Off",
            "Send a notification to disconnect the device after get off.",
        ),
        toggle("OpkrBatteryChargingControl", "Enable Battery Charging Control", "Enables battery charging control."),
        stepper("OpkrBatteryChargingMin", "BAT MinCharging Value", 10, 90, default=70, unit="%"),
        stepper("OpkrBatteryChargingMax", "BAT MaxCharging Value", 10, 90, default=80, unit="%"),
        stepper("OpkrFanSpeedGain", "Fan Speed Gain", -16, 16, step=2, default=0, choices=((0, "default"),)),
        toggle(
            "OpkrDrivingRecord",
            "Enable Auto Recording",
            "Automatically record/stop the screen while driving.",
        ),
        stepper("RecordingCount", "Number of Recorded Files", 5, 300, step=5, default=100, unit=" files"),
        stepper(
            "RecordingQuality",
            "Recording Quality",
            0,
            3,
            default=1,
            choices=((0, "low"), (1, "mid"), (2, "high"), (3, "U-high")),
        ),
        Action(
            "delete_recordings",
            "Delete All Recordings",
            "EXECUTE",
            prompt="Deletes all saved recorded files. Are you sure you want to proceed?",
            command="delete_recordings",
        ),
        Action(
            "delete_driving_logs",
            "Delete All Driving Logs",
            "EXECUTE",
            prompt="Deletes all saved driving logs. Are you sure you want to proceed?",
            command="delete_driving_logs",
        ),
        stepper("OpkrMonitoringMode", "Driver Monitoring Mode", 0, 1, choices=((0, "default"), (1, "unsleep"))),
        stepper("OpkrMonitorEyesThreshold", "E2E EYE Threshold", 0, 100, default=45, scale=0.01, decimals=2),
        stepper("OpkrMonitorNormalEyesThreshold", "Normal EYE Threshold", 0, 100, default=50, scale=0.01, decimals=2),
        stepper("OpkrMonitorBlinkThreshold", "Blink Threshold", 0, 100, default=50, scale=0.01, decimals=2),
        toggle("OpkrApksEnable", "Enable Apks", "Launch bundled apps (navigation, player) from the onroad screen."),
        toggle("OpkrRunNaviOnBoot", "Navi Auto Launch On Boot", "After booting, navigation (T Map) is automatically launched."),
        Section("Driving Settings"),
        toggle("OpkrAutoResume", "Enable Auto Resume", "Auto Resume is used when stopping while using SCC."),
        toggle(
            "OpkrVariableCruise",
            "Enable Variable Cruise",
            "Acceleration/deceleration is supported by using the cruise button while SCC is in use.",
        ),
        stepper("OpkrVariableCruiseProfile", "Cruise Accel/Decel Profile", 0, 1, choices=((0, "follow"), (1, "relaxed"))),
        stepper(
            "CruiseStatemodeSelInit",
            "Cruise Start Mode",
            0,
            5,
            default=1,
            choices=(
                (0, "OP Stock"),
                (1, "Dist+Curv"),
                (2, "Dist Only"),
                (3, "Curv Only"),
                (4, "One Way"),
                (5, "CamSpeed"),
            ),
        ),
        stepper("OpkrLaneChangeSpeed", "Lane Change Speed", 20, 160, step=5, default=45, unit=" km/h"),
        stepper(
            "OpkrAutoLaneChangeDelay",
            "Lane Change Delay",
            0,
            5,
            choices=((0, "manual"), (1, "nudge"), (2, "0.5 s"), (3, "1 s"), (4, "1.5 s"), (5, "2 s")),
        ),
        stepper("LeftCurvOffsetAdj", "LeftCurv Offset", -50, 50, default=0, unit=" cm"),
        stepper("RightCurvOffsetAdj", "RightCurv Offset", -50, 50, default=0, unit=" cm"),
        toggle(
            "OpkrBlindSpotDetect",
            "Display Blind Spot Detection Icon",
            "When a car is detected at your blind spot, an icon is displayed on the screen.",
        ),
        stepper("OpkrMaxAngleLimit", "Max Steering Angle", 80, 360, step=10, default=90, unit="°"),
        stepper("OpkrSteerAngleCorrection", "Steer Angle Correction", -50, 50, default=0, scale=0.1, decimals=1, unit="°"),
        toggle(
            "OpkrTurnSteeringDisable",
            "Enable Autosteer Suspension",
            "When turn signal is used below the lane change speed, autosteer is temporary suspended.",
        ),
        toggle(
            "CruiseOverMaxSpeed",
            "Set Cruise Over Max Speed",
            "If the current speed exceeds the set speed, the set speed is synchronized with the current speed.",
        ),
        stepper("OpkrSpeedLimitOffset", "SpeedLimit Offset", -20, 20, default=0, unit="%"),
        toggle(
            "CruiseGapAdjust",
            "Auto Set Cruise Gap When Stopped",
            "When stopping, the cruise gap is changed to 1 space for a quick departure.",
        ),
        toggle(
            "AutoEnable",
            "Enable Auto Engage",
            "When disengaged, if the cruise button is in the standby state, auto engage is activated.",
        ),
        toggle(
            "CruiseAutoRes",
            "Enable Cruise Auto RES",
            "If brake disengages cruise, the previous set speed is restored when the brake pedal is released.",
        ),
        stepper("AutoResOption", "Auto RES Option", 0, 1, choices=((0, "cruise set"), (1, "cruise gap"))),
        toggle(
            "SteerWindDown",
            "Steer Wind Down",
            "During Steer Warning, the torque is gradually reduced.",
        ),
        toggle("MadModeEnabled", "ACC MAIN openpilot ON/OFF", "Use ACC MAIN to activate openpilot."),
        Section("Developer"),
        toggle("DebugUi1", "DEBUG UI 1", publish=("debug_ui1",)),
        toggle("DebugUi2", "DEBUG UI 2", publish=("debug_ui2",)),
        toggle(
            "LongLogDisplay",
            "LONG LOG View",
            "Instead of the variable cruise log, the long tuning debug log is displayed on the screen.",
        ),
        toggle(
            "PutPrebuiltOn",
            "Create Prebuilt File",
            "Shortens the boot time by creating a prebuilt file. If you have made UI modifications, "
            "turn off the feature temporarily.",
        ),
        toggle(
            "FingerprintTwoSet",
            "Enable FingerPrint 2.0",
            "Enable Fingerprint 2.0. The car is recognized by ECU firmware recognition.",
        ),
        toggle("LdwsCarFix", "LDWS Car Settings"),
        toggle(
            "JustDoGearD",
            "Gear D Force Recognition",
            "For use when engagement is not possible due to a gear recognition problem.",
        ),
        toggle(
            "ComIssueGone",
            "Turn off ComIssue",
            "Turn off the Communication Error Between Processes alarm when using White Panda.",
        ),
        toggle("WhitePandaSupport", "White Panda Support", "Turn on the feature when using White Panda"),
        toggle(
            "SteerWarningFix",
            "Turn Off Steering Warning",
            "Turn on the feature when the vehicle has a steering error that makes it impossible to steer.",
        ),
        toggle("OpkrBattLess", "Use Batteryless", "Toggle for batteryless device. Relevant settings will be applied."),
        Action(
            "force_calibration",
            "Enable Force Calibration",
            "EXECUTE",
            prompt=(
                "Force calibration. It is for checking engagement, so please initialize it during "
                "actual driving."
            ),
            command="force_calibration",
        ),
        Label("car_model", "Car Recognition", param="CarModel"),
        Section("Panda Values"),
        stepper("MaxSteer", "MAX_STEER", 384, 1000, default=384),
        stepper("MaxRTDelta", "RT_DELTA", 50, 500, default=112),
        stepper("MaxRateUp", "MAX_RATE_UP", 3, 20, default=3),
        stepper("MaxRateDown", "MAX_RATE_DOWN", 7, 20, default=7),
        Action(
            "panda_edit",
            "Apply Panda Value Change",
            "EXECUTE",
            prompt=(
                "Apply the changed pandas value. Are you sure you want to proceed? The device will "
                "automatically reboot."
            ),
            command="panda_edit",
        ),
    ),
)

TUNING = PanelSpec(
    "tuning",
    "Tuning",
    (
        Section("Tuning Menu"),
        stepper("CameraOffsetAdj", "CameraOffset", -100, 100, default=60, scale=0.001, decimals=3, unit=" m"),
        toggle("OpkrLiveSteerRatio", "Enable Live SteerRatio", "Enables Live SteerRatio instead of variable/fixed SteerRatio."),
        stepper("SteerRatioAdj", "SteerRatio", 800, 2000, step=5, default=1550, scale=0.01, decimals=2),
        stepper("SteerRatioMaxAdj", "SteerRatioMax", 800, 2000, step=5, default=1750, scale=0.01, decimals=2),
        stepper("SteerActuatorDelayAdj", "SteerActuatorDelay", 0, 100, default=35, scale=0.01, decimals=2),
        stepper("SteerRateCostAdj", "SteerRateCost", 1, 200, default=45, scale=0.01, decimals=2),
        stepper("SteerLimitTimerAdj", "SteerLimitTimer", 0, 300, step=5, default=80, scale=0.01, decimals=2),
        stepper("TireStiffnessFactorAdj", "TireStiffnessFactor", 50, 150, default=100, scale=0.01, decimals=2),
        stepper("SteerMaxBaseAdj", "SteerMax Base", 200, 409, default=255),
        stepper("SteerMaxAdj", "SteerMax Max", 254, 1000, default=384),
        stepper("SteerMaxvAdj", "SteerMaxV", 10, 30, default=15, scale=0.1, decimals=1),
        toggle("OpkrVariableSteerMax", "Enable Variable SteerMax", "Enable variable SteerMax based on curvature."),
        stepper("SteerDeltaUpBaseAdj", "SteerDeltaUp Base", 2, 7, default=3),
        stepper("SteerDeltaUpAdj", "SteerDeltaUp Max", 3, 7, default=3),
        stepper("SteerDeltaDownBaseAdj", "SteerDeltaDown Base", 3, 15, default=7),
        stepper("SteerDeltaDownAdj", "SteerDeltaDown Max", 7, 15, default=7),
        toggle(
            "OpkrVariableSteerDelta",
            "Enable Variable SteerDelta",
            "Enable variable SteerDelta based on curvature.",
        ),
        stepper("SteerThreshold", "SteerThreshold", 50, 300, step=10, default=150),
        Section("Control Menu"),
        stepper(
            LATERAL_CONTROL_PARAM,
            "LatControl",
            0,
            2,
            default=0,
            choices=((0, "PID"), (1, "INDI"), (2, "LQR")),
        ),
        toggle(
            "OpkrLiveTunePanelEnable",
            "Enable LiveTune and UI",
            "Display the Live Tune UI. Tuning values can be set in realtime on the onroad screen.",
        ),
        stepper("PidKp", "Kp", 1, 50, default=25, scale=0.01, decimals=2, visible_when=PID_MODE),
        stepper("PidKi", "Ki", 1, 100, default=5, scale=0.001, decimals=3, visible_when=PID_MODE),
        stepper("PidKd", "Kd", 0, 300, default=0, scale=0.01, decimals=2, visible_when=PID_MODE),
        stepper("PidKf", "Kf", 1, 50, default=5, scale=0.00001, decimals=5, visible_when=PID_MODE),
        stepper("IgnoreZone", "IgnoreZone", 0, 30, default=1, scale=0.1, decimals=1, visible_when=PID_MODE),
        toggle(
            "ShaneFeedForward",
            "Enable Shane FeedForward",
            "Depending on the steering angle, torque is lowered on straight roads and dynamically "
            "adjusted on curved roads.",
            visible_when=PID_MODE,
        ),
        stepper("InnerLoopGain", "InnerLoopGain", 1, 50, default=30, scale=0.1, decimals=1, visible_when=INDI_MODE),
        stepper("OuterLoopGain", "OuterLoopGain", 1, 50, default=20, scale=0.1, decimals=1, visible_when=INDI_MODE),
        stepper("TimeConstant", "TimeConstant", 1, 50, default=10, scale=0.1, decimals=1, visible_when=INDI_MODE),
        stepper(
            "ActuatorEffectiveness",
            "ActuatorEffectiveness",
            1,
            50,
            default=10,
            scale=0.1,
            decimals=1,
            visible_when=INDI_MODE,
        ),
        stepper("Scale", "Scale", 50, 5000, step=50, default=1500, visible_when=LQR_MODE),
        stepper("LqrKi", "LqrKi", 1, 100, default=15, scale=0.001, decimals=3, visible_when=LQR_MODE),
        stepper("DcGain", "DcGain", 1, 500, default=30, scale=0.0001, decimals=4, visible_when=LQR_MODE),
        Section("Longitudinal Tuning Menu"),
        stepper(
            "DynamicTRGap",
            "Use DynamicTR",
            0,
            4,
            default=0,
            choices=((0, "off"), (1, "gap 1"), (2, "gap 2"), (3, "gap 3"), (4, "gap 4")),
        ),
        stepper("CruiseGap1", "CruiseGap 1 TR", 10, 30, default=11, scale=0.1, decimals=1, unit=" s"),
        stepper("CruiseGap2", "CruiseGap 2 TR", 10, 30, default=13, scale=0.1, decimals=1, unit=" s"),
        stepper("CruiseGap3", "CruiseGap 3 TR", 10, 30, default=16, scale=0.1, decimals=1, unit=" s"),
        stepper("CruiseGap4", "CruiseGap 4 TR", 10, 30, default=20, scale=0.1, decimals=1, unit=" s"),
    ),
)

PANELS: tuple[PanelSpec, ...] = (DEVICE, NETWORK, TOGGLES, SOFTWARE, DEVELOPER, TUNING)


def panel_spec(panel_id: str) -> PanelSpec:
    for spec in PANELS:
        if spec.panel_id == panel_id:
            return spec
    raise KeyError(f"Unknown settings panel '{panel_id}'")


def iter_descriptors() -> list[ControlDescriptor]:
    return [entry for spec in PANELS for entry in spec.entries if isinstance(entry, ControlDescriptor)]


# -- action handlers ---------------------------------------------------------


def _calibration_prompt(ctx: ActionContext) -> str:
    return f"{CALIBRATION_HINT} {calibration_text(ctx.store.get(CALIBRATION_PARAM))}"


def _handler(ctx: ActionContext, name: str) -> Callable[[], int]:
    if name == "noop":
        return lambda: 0

    if name == "driver_view":

        def _driver_view() -> int:
            ctx.events.append(SHOW_DRIVER_VIEW)
            ctx.ui_state.push_notification("Driver camera preview requested")
            return 0

        return _driver_view

    if name == "review_training":

        def _review_training() -> int:
            ctx.store.remove("CompletedTrainingVersion")
            ctx.events.append(REVIEW_TRAINING_GUIDE)
            return 0

        return _review_training

    if name == "uninstall":

        def _uninstall() -> int:
            ctx.store.put_bool("DoUninstall", True)
            return 0

        return _uninstall

    if name == "calibration_reset":

        def _calibration_reset() -> int:
            ctx.store.remove(CALIBRATION_PARAM)
            ctx.store.remove("LiveParameters")
            ctx.sleep(ctx.config.ui.reboot_delay_s)
            return ctx.runner.run_external(ctx.command("reboot"))

        return _calibration_reset

    raise KeyError(f"Unknown action handler '{name}'")


def build_action(ctx: ActionContext, action: Action) -> ActionSpec:
    if action.command:
        command = ctx.command(action.command)

        def run() -> int:
            return ctx.runner.run_external(command)

    elif action.handler:
        run = _handler(ctx, action.handler)
    else:
        raise ValueError(f"Action '{action.action_id}' has neither command nor handler")

    prompt: Optional[Union[str, Callable[[], str]]] = action.prompt
    if action.prompt == "calibration":

        def prompt() -> str:
            return _calibration_prompt(ctx)

    return ActionSpec(
        action_id=action.action_id,
        title=action.title,
        button_text=action.button_text,
        run=run,
        description=action.description,
        prompt=prompt,
        offroad_only=action.offroad_only,
        hidden_when=action.hidden_when,
        requires=action.requires,
        inline=action.inline,
    )


def _label_provider(ctx: ActionContext, label: Label, flow: Optional[UpdateCheckFlow]) -> Callable[[], str]:
    store = ctx.store
    if label.param:
        param = label.param
        return lambda: store.get_str(param).strip()
    source = label.source
    if source == "brand_version":
        return lambda: ctx.config.device.brand_version
    if source == "os_version":
        return lambda: ctx.config.device.os_version
    if source == "git_remote":
        return lambda: git_remote_text(store)
    if source == "git_commit":
        return lambda: short_commit(store, "GitCommit")
    if source == "git_commit_remote":
        return lambda: short_commit(store, "GitCommitRemote")
    if source == "last_update":
        if flow is None:
            raise ValueError("last_update label needs an update check on the same panel")
        return flow.last_update_text
    raise KeyError(f"Unknown label source '{source}'")


def build_panel(
    spec: PanelSpec,
    ctx: ActionContext,
    *,
    watcher: Optional[FileWatcher] = None,
    executor: Optional[ActionExecutor] = None,
) -> PanelModel:
    """Build one panel, skipping entries the device cannot support."""
    panel = PanelModel(
        spec.panel_id,
        spec.title,
        ctx.store,
        coordinator=RefreshCoordinator(spec.panel_id, watcher=watcher),
        executor=executor,
    )
    flow: Optional[UpdateCheckFlow] = None
    if any(isinstance(entry, UpdateCheck) for entry in spec.entries):
        flow = UpdateCheckFlow(panel, ctx.runner, ctx.config)

    for entry in spec.entries:
        if isinstance(entry, Section):
            panel.add_section(entry.title)
        elif isinstance(entry, Label):
            panel.add_label(entry.label_id, entry.title, _label_provider(ctx, entry, flow))
        elif isinstance(entry, ControlDescriptor):
            if not ctx.has_capability(entry.requires):
                continue
            panel.add_binding(ControlBinding(entry, ctx.store, ui_state=ctx.ui_state))
        elif isinstance(entry, Action):
            if not ctx.has_capability(entry.requires):
                continue
            panel.add_action(build_action(ctx, entry))
        elif isinstance(entry, UpdateCheck) and flow is not None:
            flow.register()
    return panel


def build_panels(
    ctx: ActionContext,
    *,
    watcher: Optional[FileWatcher] = None,
    executor: Optional[ActionExecutor] = None,
) -> list[PanelModel]:
    return [build_panel(spec, ctx, watcher=watcher, executor=executor) for spec in PANELS]
