"""渲染器模块导出."""

from elasticcriteria.translators.dsl import QueryTranslator, TranslatorCapabilities

__all__ = [
    "QueryTranslator",
    "TranslatorCapabilities",
]
