"""
Direct-collocation transcription of a Problem into a CasADi NLP.
"""

from .constraints_transcription import expand_constraints, flatten_constraints
from .core_transcription import Transcription
from .mesh_transcription import GridLayout, build_grid, build_mesh
from .schemes import TRANSCRIPTION_SCHEMES, create_transcription
from .types_transcription import ConstraintLayout, Constraints
from .variables_transcription import VariableLayout


__all__ = [
    "TRANSCRIPTION_SCHEMES",
    "ConstraintLayout",
    "Constraints",
    "GridLayout",
    "Transcription",
    "VariableLayout",
    "build_grid",
    "build_mesh",
    "create_transcription",
    "expand_constraints",
    "flatten_constraints",
]
