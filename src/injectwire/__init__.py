from injectwire.config import InjectWireSettings
from injectwire.exceptions import (
    InjectWireConfigurationError,
    InjectWireError,
    InjectWireInvalidProducerError,
    InjectWireLedgerClosedError,
    InjectWireProductionError,
    InjectWireResolutionError,
)
from injectwire.extension import InjectionExtension
from injectwire.injector import InjectionDriver
from injectwire.markers import Injected, Qualifier
from injectwire.producers import InjectionProducer, ProducerRegistry
from injectwire.resolver import ProducerInvoker, TargetResolver
from injectwire.resources import Releasable, ResourceLedger
from injectwire.targets import AnnotatedTargetEnumerator, AttributeAssigner, InjectionTarget

__all__ = [
    "AnnotatedTargetEnumerator",
    "AttributeAssigner",
    "InjectWireConfigurationError",
    "InjectWireError",
    "InjectWireInvalidProducerError",
    "InjectWireLedgerClosedError",
    "InjectWireProductionError",
    "InjectWireResolutionError",
    "InjectWireSettings",
    "Injected",
    "InjectionDriver",
    "InjectionExtension",
    "InjectionProducer",
    "InjectionTarget",
    "ProducerInvoker",
    "ProducerRegistry",
    "Qualifier",
    "Releasable",
    "ResourceLedger",
    "TargetResolver",
]
