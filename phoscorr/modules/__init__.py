"""
Analysis modules: configuration, binning, candidate selection, pair
correlation, event mixing and the per-event pipeline.

The event loop is driven by EventPipeline. The momentum-array reader and
the eta/phi unit grid are standalone tools for jet-style studies of the
same EventRecord input and are not called by the pipeline:

    reader = MomentumArrayReader(pt_min=0.15, eta_min=-0.9, eta_max=0.9)
    momenta = reader.fill(record.tracks)
    grid = UnitGrid(18, -0.9, 0.9, 36, 0.0, 2 * math.pi)
    units = UnitArray(grid)
    units.fill(momenta)
"""

from .config import AnalysisSettings, TOMLConfig
from .event_source import EventRecord, InMemoryEventSource, UprootEventSource
from .histograms import HistogramRegistry
from .pipeline import EventPipeline, EventResult, EventState
from .reader import MomentumArray, MomentumArrayReader, UnitArray, UnitGrid

__all__ = [
    'AnalysisSettings',
    'TOMLConfig',
    'EventRecord',
    'InMemoryEventSource',
    'UprootEventSource',
    'HistogramRegistry',
    'EventPipeline',
    'EventResult',
    'EventState',
    'MomentumArray',
    'MomentumArrayReader',
    'UnitArray',
    'UnitGrid',
]
