#!/usr/bin/env python3
"""
Test script for the motion-speed smoothing.

Verifies:
1. SpeedSmoother eases toward a new target over time
2. The default time constant closes 95% of a step in one 60 Hz frame
3. Zero / negative dt and zero tau edge cases
4. AnimationClocks integrates scaled time with the smoothed speed
"""

import math

from sprite_engine.clocks import (
    SPEED_TIME_CONSTANT,
    AnimationClocks,
    SpeedSmoother,
    target_speed_factor,
)
from sprite_engine.state import default_state


def test_speed_smoother_drift():
    """Test easing over time with a slow time constant."""
    print("Testing SpeedSmoother...")
    smoother = SpeedSmoother(0.15, tau=2.0)

    # After 1 frame at 60fps
    previous, current = smoother.step(0.30, 1 / 60)
    assert previous == 0.15
    assert abs(current - 0.15) < 0.01, f"Should barely move after 1 frame: {current}"

    # After ~10 seconds (600 frames), five time constants
    for _ in range(599):
        smoother.step(0.30, 1 / 60)
    assert abs(smoother.factor - 0.30) < 0.002, f"Should be near target after 10s: {smoother.factor}"

    smoother.snap(0.5)
    assert smoother.factor == 0.5, "Snap should set the factor immediately"

    print("  ✓ SpeedSmoother working correctly")


def test_speed_time_constant():
    """Default tau closes 95% of a step per 60 Hz frame regardless of frame size."""
    print("Testing speed time constant...")
    one_frame = SpeedSmoother(0.0)
    one_frame.step(1.0, 1 / 60)
    assert math.isclose(one_frame.factor, 0.95, rel_tol=1e-9), one_frame.factor

    substeps = SpeedSmoother(0.0, SPEED_TIME_CONSTANT)
    for _ in range(10):
        substeps.step(1.0, 1 / 600)
    assert math.isclose(substeps.factor, 0.95, rel_tol=1e-9), "Should be frame-rate independent"
    print("  ✓ Time constant is frame-rate independent")


def test_edge_cases():
    smoother = SpeedSmoother(2.0)
    assert smoother.step(4.0, 0) == (2.0, 2.0), "Zero dt should not move"
    assert smoother.step(4.0, -1) == (2.0, 2.0), "Negative dt should not move"

    instant = SpeedSmoother(2.0, tau=0)
    assert instant.step(4.0, 1 / 60) == (2.0, 4.0), "Zero tau should jump to target"


def test_clock_speed_integration():
    """Scaled time follows the smoothed speed, and stops when animation is off."""
    print("Testing clock integration...")
    state = default_state(motion_speed=12.5, movement_mode="drift")
    clocks = AnimationClocks(state)
    clocks.advance(state, 1 / 60)
    expected = target_speed_factor(state)
    assert math.isclose(clocks.scaled_time, expected, rel_tol=1e-9), clocks.scaled_time

    stopped = default_state(animation_enabled=False)
    still = AnimationClocks(stopped)
    for _ in range(30):
        still.advance(stopped, 1 / 60)
    assert still.scaled_time == 0.0, "Disabled animation should freeze motion time"
    print("  ✓ Clock integration working correctly")


def test_speed_change_ramps():
    """A slider jump reaches the new speed within a few frames, never in zero."""
    slow = default_state(motion_speed=1.0)
    fast = slow.evolve(motion_speed=12.5)
    clocks = AnimationClocks(slow)
    clocks.advance(fast, 1 / 60)
    assert clocks.speed.factor < target_speed_factor(fast)
    for _ in range(5):
        clocks.advance(fast, 1 / 60)
    assert math.isclose(clocks.speed.factor, target_speed_factor(fast), rel_tol=1e-4)


if __name__ == "__main__":
    test_speed_smoother_drift()
    test_speed_time_constant()
    test_edge_cases()
    test_clock_speed_integration()
    test_speed_change_ramps()
    print("\nAll smoothing tests passed.")
