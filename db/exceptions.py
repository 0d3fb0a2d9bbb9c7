class MigrationError(Exception):
    """Base class for errors that abort a migration run."""


class ConnectionSetupError(MigrationError):
    def __init__(self, store: str, message: str):
        self.store = store
        self.message = message
        super().__init__(f"could not connect to {store}: {message}")


class WriteError(MigrationError):
    def __init__(self, table: str, message: str):
        self.table = table
        self.message = message
        super().__init__(f"write to {table} failed: {message}")
