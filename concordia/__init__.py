"""
Concordia — collective decision-making for cooperating agents.
"""

from concordia.config import ConcordiaConfig, ConsensusConfig, load_config
from concordia.systems.consensus import ConsensusService

__version__ = "0.1.0"

__all__ = ["ConcordiaConfig", "ConsensusConfig", "ConsensusService", "load_config"]
