"""Menus of common sway commands for execute-swaymsg-command and configure-outputs."""

from typing import Any, Dict, List

TRANSFORMS = [
    "normal",
    "90",
    "180",
    "270",
    "360",
    "flipped",
    "flipped-90",
    "flipped-180",
    "flipped-270",
]


def swaymsg_commands() -> List[str]:
    """Sorted list of generally useful sway commands."""
    cmds = [f"border {b}" for b in ("none", "normal", "csd", "pixel")]
    cmds += [
        "exit",
        "floating toggle",
        "focus child",
        "focus parent",
        "focus tiling",
        "focus floating",
        "focus mode_toggle",
        "fullscreen toggle",
        "reload",
        "sticky toggle",
        "kill",
        "tiling_drag toggle",
    ]
    cmds += [f"inhibit_idle {x}" for x in ("focus", "fullscreen", "open", "none", "visible")]
    cmds += [f"layout {x}" for x in ("default", "splith", "splitv", "stacking", "tiling")]
    cmds += [f"shortcuts_inhibitor {x}" for x in ("enable", "disable")]
    cmds += [f"focus_follows_mouse {x}" for x in ("yes", "no", "always")]
    cmds += [f"focus_on_window_activation {x}" for x in ("smart", "urgent", "focus", "none")]
    cmds += [f"focus_wrapping {x}" for x in ("yes", "no", "force", "workspace")]
    cmds += [
        f"hide_edge_borders {x}"
        for x in ("none", "vertical", "horizontal", "both", "smart", "smart_no_gaps")
    ]
    cmds += [f"smart_borders {x}" for x in ("on", "no_gaps", "off")]
    cmds += [f"smart_gaps {x}" for x in ("on", "off")]
    cmds += [f"mouse_warping {x}" for x in ("output", "container", "none")]
    cmds += [f"popup_during_fullscreen {x}" for x in ("smart", "ignore", "leave_fullscreen")]
    for x in ("yes", "no"):
        cmds.append(f"show_marks {x}")
        cmds.append(f"workspace_auto_back_and_forth {x}")
    cmds += [f"title_align {x}" for x in ("left", "center", "right")]
    cmds += [f"urgent {x}" for x in ("enable", "disable", "allow", "deny")]
    return sorted(cmds)


def output_commands(outputs: List[Dict[str, Any]]) -> List[str]:
    """Sorted per-output configuration commands.

    Args:
        outputs: Raw GET_OUTPUTS entries
    """
    cmds = []
    for output in outputs:
        name = output.get("name")
        if not name:
            continue
        cmds.append(f"output {name} toggle")
        for mode in output.get("modes") or []:
            cmds.append(f"output {name} mode {mode.get('width')}x{mode.get('height')}")
        for on_off in ("on", "off"):
            cmds.append(f"output {name} dpms {on_off}")
            cmds.append(f"output {name} adaptive_sync {on_off}")
        for transform in TRANSFORMS:
            for direction in ("clockwise", "anticlockwise"):
                cmds.append(f"output {name} transform {transform} {direction}")
        for subpixel in ("rgb", "bgr", "vrbg", "vbgr", "none"):
            cmds.append(f"output {name} subpixel {subpixel}")
        for scale_filter in ("linear", "nearest", "smart"):
            cmds.append(f"output {name} scale_filter {scale_filter}")
    return sorted(cmds)
