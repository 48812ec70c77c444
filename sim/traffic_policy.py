#!/usr/bin/env python3
"""
sim/traffic_policy.py
=====================
Tunable signal, driving and pedestrian parameters for the city simulation.
Every constant lives in the frozen :class:`TrafficPolicy` dataclass so that
experiments can swap policies without touching code.

Distances are world units, speeds are units per second, times are seconds.
"""

from __future__ import annotations

from dataclasses import dataclass

import config


@dataclass(frozen=True)
class TrafficPolicy:
    """Immutable bag of every tunable simulation parameter.

    Groups: signal timing, green wave, stop query, driving, car
    following, segment following, turn signals, bounds, collision
    response, frame, pedestrians.
    """

    # ── Signal timing ─────────────────────────────────────────────────────
    green_s: float = 10.0
    """Green duration per axis."""

    yellow_s: float = 2.0
    """Yellow duration per axis."""

    all_red_s: float = 1.0
    """All-red clearance between the two axes."""

    # ── Green wave ────────────────────────────────────────────────────────
    green_wave_enabled: bool = True
    """Apply pre-computed phase offsets along each main road."""

    green_wave_speed: float = 50.0
    """Progression speed the offsets are computed for."""

    # ── Stop query ────────────────────────────────────────────────────────
    stop_line_distance: float = 8.0
    """Distance of the stop position before the intersection centre."""

    stop_query_lookahead: float = 20.0
    """Default look-ahead of :meth:`SignalCoordinator.should_stop`."""

    stop_query_min_distance: float = 2.0
    """Lights closer than this are considered already entered."""

    pedestrian_signal_radius: float = 20.0
    """Walk signal only applies within this radius of a signaled light."""

    # ── Driving ───────────────────────────────────────────────────────────
    acceleration: float = 15.0
    """Speed gain per second while below target."""

    brake_force: float = 25.0
    """Speed loss per second while above target."""

    max_speed: float = 50.0
    """Absolute speed clamp for NPC agents."""

    turn_speed: float = 2.0
    """Heading gain: fraction of the heading error corrected per second."""

    default_speed: float = 30.0
    """Target speed when the agent has no lane."""

    spawn_speed_factor: float = 0.5
    """Initial speed as a fraction of the target speed."""

    turning_speed: float = 15.0
    """Target speed while in the turning state."""

    # ── Signal reaction ───────────────────────────────────────────────────
    signal_lookahead: float = 25.0
    """Look-ahead used by agents when querying the lights."""

    signal_stop_trigger: float = 15.0
    """A required stop closer than this switches the agent to stopping."""

    stop_margin: float = 5.0
    """Subtracted from the stop distance to get the stopping distance."""

    stopped_speed: float = 0.5
    """Below this speed a stopping agent counts as waiting."""

    resume_fraction: float = 0.8
    """Accelerating ends once speed reaches this fraction of the target."""

    # ── Car following ─────────────────────────────────────────────────────
    follow_distance: float = 8.0
    """Within this distance the leader's speed caps the target speed."""

    safe_distance: float = 5.0
    """Within this distance the agent switches to stopping."""

    follow_lateral_tolerance: float = 3.0
    """Vehicles farther off the forward axis are ignored."""

    # ── Segment following ─────────────────────────────────────────────────
    lookahead_progress: float = 0.2
    """Progress ahead of the agent used for the steering target."""

    progress_step: float = 0.05
    """Progress gained each time the steering target is reached."""

    target_reach_distance: float = 3.0
    """Distance at which the steering target counts as reached."""

    bind_radius: float = 20.0
    """Unbound agents bind to a segment within this distance."""

    junction_radius: float = 15.0
    """Segment ends within this distance are candidate continuations."""

    lateral_offset_fraction: float = 0.4
    """Random lateral offset range as a fraction of the road width."""

    turning_enter_delta: float = 0.8
    """Heading error (rad) that switches driving to turning."""

    # ── Turn signals ──────────────────────────────────────────────────────
    turn_signal_threshold: float = 0.3
    """Heading error (rad) above which the indicator is on."""

    blink_interval_s: float = 0.4
    """Indicator blink half-period."""

    # ── Bounds ────────────────────────────────────────────────────────────
    city_bound: float = 135.0
    """Agents beyond this |x| or |z| steer back toward the centre."""

    bound_steer_rate: float = 3.0
    """Heading gain applied while steering back into the city."""

    # ── Collision response ────────────────────────────────────────────────
    collision_radius: float = 2.5
    """Agents closer than this are treated as colliding."""

    # ── Frame ─────────────────────────────────────────────────────────────
    max_frame_dt_s: float = config.MAX_FRAME_DT_S
    """Upper clamp on the per-tick time delta."""

    # ── Pedestrians ───────────────────────────────────────────────────────
    pedestrian_walk_speed_min: float = 1.2
    pedestrian_walk_speed_max: float = 2.0
    """Walking speed range (units per second) drawn per pedestrian."""

    pedestrian_walk_radius_min: float = 3.0
    pedestrian_walk_radius_max: float = 5.0
    """Radius range of the loop walked around each home point."""

    pedestrian_danger_radius: float = 4.0
    """A moving vehicle this close triggers a dodge."""

    pedestrian_hazard_min_speed: float = 1.0
    """Vehicles slower than this are not a hazard."""

    pedestrian_dodge_s: float = 0.8
    """Duration of a dodge."""

    pedestrian_dodge_distance: float = 1.5
    """Side-step length away from the hazard."""

    @property
    def cycle_length(self) -> float:
        """Length of the default six-phase cycle."""
        return 2.0 * (self.green_s + self.yellow_s + self.all_red_s)
