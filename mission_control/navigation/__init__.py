"""Navigation state reported by the robot and the dispatcher that updates it."""
