"""Session lifecycle: one server process plus its relay channel."""
