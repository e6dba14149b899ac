"""CLI entry point for kwait.

Usage:
    python -m kwait KIND NAME_OR_SELECTOR [options]

Example:
    python -m kwait Deployment web -f rollout.yaml --timeout 5m
    python -m kwait StatefulSet db -n prod < ready.yaml
"""

from .runner import main
import sys

if __name__ == '__main__':
    sys.exit(main())
