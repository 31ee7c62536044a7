# deploywatch - AWS CodeDeploy live dashboard
"""deploywatch: live terminal dashboard for AWS CodeDeploy rollouts.

This package polls CodeDeploy and EC2 for deployment/instance status and
keeps a terminal dashboard up to date.

Core Components:
- Task Scheduler: independently cadenced periodic jobs with cooperative cancellation
- State Aggregator: lock-guarded snapshot of deployments, instances and statuses
- Backoff Controller: adaptive polling cadence under service failures
- Dashboard: rich-based terminal sink fed only with changed renderings
"""

__version__ = "0.4.0"
