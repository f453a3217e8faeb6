"""Graph orchestrator: declarative workflow graphs with typed state,
fan-out/fan-in, human-in-the-loop gates and durable checkpoints."""

__version__ = "0.1.0"
