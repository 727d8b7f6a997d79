"""Chat Gateway: route chat messages to remote, daemon and local-file models."""
