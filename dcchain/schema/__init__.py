# dcchain/schema/__init__.py
from .xsd_check import XsdChecker, XsdCheckReport, XsdStatus

__all__ = ["XsdChecker", "XsdCheckReport", "XsdStatus"]
