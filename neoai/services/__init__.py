"""Generation-job services: registry, adapters, staging, polling, history."""
