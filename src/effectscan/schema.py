from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class EffectDTO(BaseModel):
    effect: str
    args: List[str]
    declared_by: str


class DiagnosticDTO(BaseModel):
    kind: str
    function: str
    message: str
    line: Optional[int] = None


class ErrorDTO(BaseModel):
    kind: str
    function: str = ""
    line: Optional[int] = None
    message: str


class EntrypointReportDTO(BaseModel):
    entrypoint: str
    status: str
    effects: List[EffectDTO] = []
    returns: Optional[str] = None
    diagnostics: List[DiagnosticDTO] = []
    error: Optional[ErrorDTO] = None


class ParseFailureDTO(BaseModel):
    path: str
    stage: str
    error: str


class AnalysisResponseDTO(BaseModel):
    reports: List[EntrypointReportDTO]
    parse_failures: List[ParseFailureDTO] = []
    declaration_failures: Dict[str, str] = {}


class PolicyResponseDTO(BaseModel):
    effects: Dict[str, List[List[str]]]
    entrypoints: List[str] = []
    failed: List[str] = []


class DeclarationDTO(BaseModel):
    args: List[Dict[str, str]]
    side_effects: List[Dict[str, Any]]
    returns: Optional[Dict[str, Any]] = None
    canonical: str
