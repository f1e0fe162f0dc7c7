"""
GitHub integration plugin for the workflow engine.

Receives GitHub webhooks and publishes normalized git events to a message
broker, and provides pipeline steps that trigger GitHub Actions workflows,
wait for their runs and create commit check runs.
"""

__version__ = "1.0.0"
