"""Solution scaffolding."""
from .core import ScaffoldError, SolutionScaffolder
from .templates import TemplateEngine

__all__ = ['ScaffoldError', 'SolutionScaffolder', 'TemplateEngine']
