"""A Kubernetes operator for deploying Redpanda clusters."""
