"""Radio link to the robot: wire protocol, transport and command path."""
