"""Runtime services (telemetry) shared by every vim_bridge module."""
