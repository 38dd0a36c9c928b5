"""agentdeck - terminal dashboard for coding-agent projects and their tasks."""
