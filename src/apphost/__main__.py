"""Run the HealthTracker app host: ``python -m apphost``."""

from apphost.healthtracker import main

if __name__ == "__main__":
    raise SystemExit(main())
