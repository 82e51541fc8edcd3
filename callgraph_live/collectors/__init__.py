from .jcmd import JcmdAttachProvider
from .loop import Sampler, SamplerState, collector_loop
from .registry import ProcessRegistry

__all__ = ["JcmdAttachProvider", "ProcessRegistry", "Sampler", "SamplerState", "collector_loop"]
