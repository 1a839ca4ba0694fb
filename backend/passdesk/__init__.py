"""Pass Desk: admission desk backend."""
