"""wirekiln protocol code generator."""

from .emitter import EmittedProtocol as EmittedProtocol
from .emitter import GeneratorContext as GeneratorContext
from .emitter import ProtocolEmitter as ProtocolEmitter
from .batch import GenerationReport as GenerationReport
from .batch import generate as generate
from .batch import generate_units as generate_units
from .schema import *
from .sizes import ProtocolSizeInfo as ProtocolSizeInfo
from .sizes import SizeCalculator as SizeCalculator
from .sizes import SizeInfo as SizeInfo
from .sizes import SizeKind as SizeKind
from .sizes import calculate_sizes as calculate_sizes
from .types import *
