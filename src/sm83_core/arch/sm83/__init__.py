# src/sm83_core/arch/sm83/__init__.py
"""
SM83 (Game Boy CPU) Architecture Package
"""
from .cpu import Sm83Cpu
from .state import Sm83CpuState
