"""Ownership of the supervised server process."""

from consolewarden.process.supervisor import ProcessSupervisor, build_launch_args

__all__ = ["ProcessSupervisor", "build_launch_args"]
