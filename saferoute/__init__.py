"""SafeRoute — safety-scored route alternatives."""
