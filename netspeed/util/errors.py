class NetSpeedError(Exception):
    """Base error for netspeed."""


class SourceReadError(NetSpeedError):
    """
    The counter file could not be read.
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f'failed to read "{path}": {reason}')


class ParseError(NetSpeedError):
    """
    A line of the counter snapshot could not be parsed.
    """

    def __init__(self, line: str, reason: str):
        self.line = line
        self.reason = reason
        super().__init__(f'failed to parse "{line}": {reason}')


class ConfigError(NetSpeedError):
    pass
