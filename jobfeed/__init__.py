"""Job acquisition and subscriber shortlisting for the job newsletter."""

__version__ = "0.3.0"
