from ._http import HTTP01Responder


__all__ = ['HTTP01Responder']
