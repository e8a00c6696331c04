"""
Component isolation modes for modular testing.

This module defines which stages of the guidance loop are active/bypassed
so the contribution of each stage can be evaluated in isolation.
"""

import argparse
import sys
from dataclasses import dataclass


@dataclass
class ComponentMode:
    """Configuration for which guidance loop stages are active."""

    # Stanley controller stages
    use_integral: bool = True  # If False, no integral correction
    use_damping: bool = True  # If False, no near-line damping multiplier

    # Simulator
    use_actuator_lag: bool = True  # If False, steer command applied instantly

    # Implement
    use_sections: bool = True  # If False, section controller is not updated

    def __str__(self):
        """Human-readable description of active stages."""
        terms = ["XTE", "HDG"]
        if self.use_integral:
            terms.append("I")
        if self.use_damping:
            terms.append("Damp")

        components = [f"Stanley({'+'.join(terms)})"]
        components.append("Ramp Actuator" if self.use_actuator_lag else "Ideal Actuator")
        components.append("Sections" if self.use_sections else "No Sections")
        return " → ".join(components)

    def to_dict(self):
        """Convert to dictionary for logging."""
        return {
            'use_integral': self.use_integral,
            'use_damping': self.use_damping,
            'use_actuator_lag': self.use_actuator_lag,
            'use_sections': self.use_sections,
        }


def parse_component_flags(args=None):
    """
    Parse command-line flags to determine which stages are active.

    Args:
        args: List of command-line arguments (default: sys.argv[1:])

    Returns:
        tuple: (ComponentMode, remaining_args)
            - ComponentMode with appropriate settings
            - List of remaining arguments not consumed
    """
    parser = argparse.ArgumentParser(add_help=False)

    parser.add_argument('--no-integral', action='store_true',
                        help='Disable the Stanley integral term')
    parser.add_argument('--no-damping', action='store_true',
                        help='Disable near-line damping of the steer angle')
    parser.add_argument('--no-actuator-lag', action='store_true',
                        help='Apply steer commands instantly in the simulator')
    parser.add_argument('--no-sections', action='store_true',
                        help='Do not run section control or coverage accounting')

    if args is None:
        args = sys.argv[1:]

    known_args, remaining_args = parser.parse_known_args(args)

    mode = ComponentMode(
        use_integral=not known_args.no_integral,
        use_damping=not known_args.no_damping,
        use_actuator_lag=not known_args.no_actuator_lag,
        use_sections=not known_args.no_sections,
    )

    return mode, remaining_args
