"""Simulation runner adapters.

The service layer depends on AbstractSimulationRunner only, so tests can
swap in a recording fake and deployments can swap in out-of-process workers.
"""
