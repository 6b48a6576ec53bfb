FENCED_INSTANCES_UPDATED = "Fenced instances of cluster {}: {}"
STATUS_HEADER = "Declared fenced instances of cluster {}: {}"
STATUS_TABLE_HEADER = ("INSTANCE", "ROLE", "READY", "DECLARED", "STATE")
STATUS_ROW_FORMAT = "{:<30} {:<8} {:<6} {:<9} {}"
COMMAND_FAILED = "Error: {}"
