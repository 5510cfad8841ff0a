"""spvgen operation codec generator."""

from .assembler import SECTIONS as SECTIONS
from .assembler import GeneratorOptions as GeneratorOptions
from .assembler import extract_section as extract_section
from .assembler import render as render
from .assembler import render_sections as render_sections
from .parser import *
from .planner import GenerationError as GenerationError
from .types import *
