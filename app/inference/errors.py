# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/2 14:10
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : 翻译流水线的异常类型
"""


class TranslationError(Exception):
    """单次翻译请求失败。str(err) 即为面向用户的错误文本。"""


class UnknownLanguage(TranslationError):
    def __init__(self, message: str = "Unknown Language"):
        super().__init__(message)


class UnsupportedLanguageMapping(TranslationError):
    def __init__(self, language: str):
        self.language = language
        super().__init__(
            f"Language supported by detection but not mapped to translator: {language}"
        )


class EmptyEngineOutput(TranslationError):
    def __init__(self, message: str = "Empty Response: Translation vector was empty"):
        super().__init__(message)


class TokenizationFailure(TranslationError):
    pass


class GenerationDecodeFailure(TranslationError):
    pass


class AdmissionTimeout(TranslationError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"No generation context became available within {timeout}s")


class ContextCreationFailure(TranslationError):
    """启动阶段加载模型或创建上下文失败，致命错误"""


class ResourceStateCorrupted(RuntimeError):
    """上下文池与准入闸门的不变量被破坏，属于程序缺陷而非可恢复错误"""
