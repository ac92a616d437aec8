from effectscan.ingest.adapter_contract import (
    FunctionUnit,
    LanguageAdapter,
    NormalizedIngestBundle,
    ParsedModule,
    ParseFailureWitness,
)
from effectscan.ingest.python_adapter import PythonAdapter
from effectscan.ingest.python_ingest import (
    collect_function_units,
    iter_python_paths,
    module_name,
    parse_python_source,
)

__all__ = [
    "FunctionUnit",
    "LanguageAdapter",
    "NormalizedIngestBundle",
    "ParseFailureWitness",
    "ParsedModule",
    "PythonAdapter",
    "collect_function_units",
    "iter_python_paths",
    "module_name",
    "parse_python_source",
]
