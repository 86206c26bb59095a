#!/usr/bin/env python3
"""
Custom exceptions for the PHOS correlation analysis

Provides a hierarchy of exceptions for better error handling and diagnostics.
All custom exceptions inherit from AnalysisError for easy catching.
"""


class AnalysisError(Exception):
    """
    Base exception for all analysis errors

    All custom exceptions inherit from this class, allowing users to catch
    all analysis-specific errors with a single except clause.
    """
    pass


class ConfigurationError(AnalysisError):
    """
    Raised when configuration is invalid or missing required fields

    Examples:
    - Missing required config file
    - Centrality edges not strictly increasing
    - Edge count not matching the number of mixing depth limits
    - Centrality window outside [0, 100]
    """
    pass


class DataLoadError(AnalysisError):
    """
    Raised when event files cannot be loaded

    Examples:
    - File not found
    - Missing tree in ROOT file
    """
    pass


class BranchMissingError(AnalysisError):
    """
    Raised when a required branch is not found in the event tree

    Examples:
    - Missing vertex or centrality branch
    - Branch name typo in the branch map
    """
    def __init__(self, branch_name: str, file_path: str = None):
        """
        Initialize BranchMissingError

        Args:
            branch_name: Name of the missing branch
            file_path: Optional path to the file being read
        """
        self.branch_name = branch_name
        self.file_path = file_path

        message = f"Required branch '{branch_name}' not found"
        if file_path:
            message += f" in file: {file_path}"

        super().__init__(message)


class HistogramError(AnalysisError):
    """
    Raised when histogram booking fails

    Examples:
    - Same histogram name booked twice
    - Axis with zero bins or an empty range
    """
    pass


class EventProcessingError(AnalysisError):
    """
    Raised when a single event cannot be processed

    The event pipeline catches it, records the failure and moves on
    to the next event.
    """
    def __init__(self, message: str, event_index: int = None):
        self.event_index = event_index
        if event_index is not None:
            message = f"Event {event_index}: {message}"
        super().__init__(message)
