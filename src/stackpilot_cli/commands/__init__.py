"""Click commands for stackpilot-cli."""
