"""
grpcmock - gRPC service virtualization

Answers every call to a gRPC service from pre-recorded request/response
pairs stored one file per method.
"""

__version__ = '1.0.0'
