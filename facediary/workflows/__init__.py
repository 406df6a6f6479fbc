"""Enrollment and authentication capture workflows"""
from .base import CaptureWorkflow, Failure, FailureReason
from .enrollment import EnrollmentPhase, EnrollmentState, EnrollmentWorkflow
from .authentication import AuthenticationPhase, AuthenticationState, AuthenticationWorkflow

__all__ = [
    'CaptureWorkflow',
    'Failure',
    'FailureReason',
    'EnrollmentPhase',
    'EnrollmentState',
    'EnrollmentWorkflow',
    'AuthenticationPhase',
    'AuthenticationState',
    'AuthenticationWorkflow'
]
