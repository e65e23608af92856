"""Bus-level simulation of the NavPilot-711C."""

from .navpilot_sim import NavPilotSimulator, NavPilotSimConfig
