from enum import Enum


class Channel(str, Enum):
    TOAST = "toast"
    LOG = "log"


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
