"""
sim — Simulation core
=====================

Modules
-------
geometry
    Heading / angle helpers and curve evaluation (arcs, quadratic Béziers).
road_graph
    :class:`RoadGraph` segments, lanes, waypoints and intersections, plus
    the fixed :func:`city_road_graph` layout.
signals
    :class:`SignalController` phase cycles and the
    :class:`SignalCoordinator` (green wave, stop queries, walk signal).
car_agent
    :class:`CarAgent` NPC driving behaviour.
pedestrian
    :class:`Pedestrian` walking loops and dodges.
world
    :class:`TrafficSimulation` tick orchestrator.
traffic_policy
    :class:`TrafficPolicy` tunable constants.
sim_bridge
    :class:`SimBridge` background-thread orchestrator.
"""
