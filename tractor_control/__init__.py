"""Tractor Control - Closed-Loop Guidance and Section Control for Field Vehicles

A synchronous fixed-step control core that steers a tractor along a reference
path and switches implement sections on and off while accounting for the
applied area.

## Architecture Overview

Each tick of the loop runs four stages in order:

### Stage 1: Guidance (guidance.py)
Projects the vehicle pose onto the reference path.
- ABLine: infinite straight line with parallel passes
- Curve: recorded points, coarse-to-fine nearest-point search
- Output: Signed cross-track error, heading error, reference heading

### Stage 2: Steering (stanley.py)
Stanley law with a bounded integral term and near-line damping.
- Speed-compressed atan of the cross-track error
- Heading error term, sign-flipped in reverse
- Anti-windup integral, clamp to the steering range
- Output: Steer angle in degrees

### Stage 3: Vehicle (simulator.py, simulation only)
Bicycle model with a tiered actuator ramp emulating hydraulic lag.
- Output: Next pose

### Stage 4: Sections (sections.py, coverage.py, boundary.py)
Per-section debounced on/off switching against a field boundary.
- Manual ON/OFF override, AUTO with on/off delay timers
- Optional suppression over already covered ground
- Output: On/off vector and append-only coverage records

## Modules

### Core Control Modules
- `config.py` - Documented default constants and immutable config objects
- `geometry.py` - Local-plane points, poses, angle wrapping, curve helpers
- `guidance.py` - AB line and curve guidance
- `stanley.py` - Stanley steering controller
- `simulator.py` - Kinematic vehicle simulator
- `boundary.py` - Field boundary membership
- `coverage.py` - Coverage patches, records and raster union
- `sections.py` - Section controller
- `runner.py` - Closed-loop tick orchestration and pose handoff
- `errors.py` - Configuration and contract error types

### Tooling
- `component_modes.py` - Stage isolation flags
- `simulate.py` - Simulation command-line interface

## Quick Start

```python
from tractor_control.simulate import build_scenario, run_scenario

runner = build_scenario("ab", initial_offset=2.0)
summary = run_scenario(runner, ticks=600)
```

Or use the command-line interface:
```bash
python -m tractor_control --line curve --offset 3 --no-integral
```

## Version

0.1.0 - Initial implementation
"""

__version__ = "0.1.0"

# Export key classes for convenience
from .config import ImplementConfig, OverlapPolicy, SectionConfig, StanleyGains, VehicleConfig
from .errors import ConfigurationError, ContractViolation, SectionIndexError
from .geometry import LocalPoint, Pose
from .guidance import ABLine, Curve, GuidanceLine, LineProjection
from .runner import ClosedLoopRunner, PoseBuffer, TickResult
from .sections import SectionController, SectionState
from .simulator import VehicleSimulator
from .stanley import ControllerState, StanleyController

__all__ = [
    "ABLine",
    "ClosedLoopRunner",
    "ConfigurationError",
    "ContractViolation",
    "ControllerState",
    "Curve",
    "GuidanceLine",
    "ImplementConfig",
    "LineProjection",
    "LocalPoint",
    "OverlapPolicy",
    "Pose",
    "PoseBuffer",
    "SectionConfig",
    "SectionController",
    "SectionIndexError",
    "SectionState",
    "StanleyController",
    "StanleyGains",
    "TickResult",
    "VehicleConfig",
    "VehicleSimulator",
]
