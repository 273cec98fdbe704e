"""TaskManager PRO package.

This package is organized by feature modules (users, tasks, notifications,
reports, ...) with a thin Flask controller layer on top of service and
repository layers.
"""
