#!/usr/bin/env python3
# =============================================================================
# scripts/start_worker.py - Celery Worker Entry Point
# =============================================================================
# Starts a Celery worker with an embedded beat scheduler, so the orphaned
# image sweep runs on its configured interval.
#
# Usage:
#   python scripts/start_worker.py
#
#   # Or use Celery CLI directly
#   celery -A workers.celery_app worker --beat -Q default,maintenance --loglevel=info
#
# Prerequisites:
#   - Redis must be running
#   - Environment variables must be set (.env file)
# =============================================================================

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from workers.celery_app import celery_app


def main():
    """Start the Celery worker and beat scheduler."""
    print("=" * 60)
    print("LocationHub Celery Worker")
    print("=" * 60)
    print()
    print("Starting worker with beat scheduler...")
    print("Press Ctrl+C to stop")
    print()

    celery_app.worker_main([
        "worker",
        "--beat",
        "--loglevel=info",
        "--queues=default,maintenance",
        "--concurrency=1",
    ])


if __name__ == "__main__":
    main()
