class OracleTransportError(Exception):
    """Provider call failed before a usable answer came back"""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable
