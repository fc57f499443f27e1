"""索引宿主与记录源适配器模块."""

from elasticcriteria.index.adapter import ModelAdapter
from elasticcriteria.index.tool import Index

__all__ = ["Index", "ModelAdapter"]
