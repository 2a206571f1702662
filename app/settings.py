import os
from pathlib import Path
from typing import Set, Any, Literal
from urllib.request import getproxies

import dotenv
from loguru import logger
from pydantic import SecretStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from telegram.ext import Application

dotenv.load_dotenv()


PROJECT_DIR = Path(__file__).parent
LOG_DIR = PROJECT_DIR.joinpath("logs")
MODELS_DIR = PROJECT_DIR.parent.joinpath("models")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")

    TELEGRAM_BOT_API_TOKEN: SecretStr = Field(
        default="", description="通过 https://t.me/BotFather 获取机器人的 API_TOKEN"
    )

    TELEGRAM_CHAT_WHITELIST: str = Field(
        default="", description="允许的聊天 ID，可以同时约束 channel，group，private，supergroup。"
    )

    whitelist: Set[int] = Field(
        default_factory=set,
        description="配置 TELEGRAM_CHAT_WHITELIST 后， id 被清洗到该列表方便使用",
    )

    HTTP_REQUEST_TIMEOUT: float = Field(
        default=75.0, description="HTTP 请求超时时间（秒），用于 Telegram API 调用。默认 75 秒。"
    )

    # 语言检测
    DETECTOR_LANGUAGES: str = Field(
        default="en,fr,ja,zh,es",
        description="语言检测的候选语言，逗号分隔。候选范围越小，短文本检测越准、越快。",
    )

    DETECTOR_MIN_CONFIDENCE: float = Field(
        default=0.6, ge=0.0, le=1.0, description="低于该置信度的检测结果视为未知语言"
    )

    TRANSLATABLE_LANGUAGES: str = Field(
        default="fr,ja,zh,es",
        description="允许翻译的源语言。可以被检测但不在该列表中的语言会被拒绝翻译。",
    )

    # 直译模型
    ENABLE_LITERAL_TRANSLATION: bool = Field(default=True, description="是否启用 M2M100 直译阶段")

    M2M100_MODEL_PATH: str = Field(
        default="facebook/m2m100_418M", description="M2M100 模型目录或 HuggingFace Hub 模型 ID"
    )

    M2M100_DEVICE: Literal["auto", "cpu", "cuda"] = Field(default="auto")

    M2M100_MAX_LENGTH: int = Field(default=256, ge=1, description="直译生成的最大长度")

    # 精修模型
    ENABLE_REFINEMENT: bool = Field(default=True, description="是否启用本地大模型精修阶段")

    REFINER_MODEL_PATH: Path = Field(
        default=MODELS_DIR.joinpath("Qwen3-8B-Q5_K_M.gguf"), description="GGUF 模型文件路径"
    )

    REFINER_POOL_SIZE: int = Field(default=2, ge=1, description="预先创建的生成上下文数量")

    REFINER_MAX_CONCURRENCY: int = Field(
        default=2, ge=1, description="同时进行精修的请求数量上限，不能超过 REFINER_POOL_SIZE"
    )

    REFINER_N_CTX: int = Field(default=2048, ge=64, description="每个生成上下文的窗口大小（token）")

    REFINER_MAX_NEW_TOKENS: int = Field(default=512, ge=1, description="单次精修最多生成的 token 数")

    REFINER_N_BATCH: int = Field(default=512, ge=1, description="prompt 批量评估的 batch 大小")

    REFINER_N_THREADS: int = Field(
        default_factory=lambda: min(4, os.cpu_count() or 1),
        ge=1,
        description="每个生成上下文使用的线程数",
    )

    REFINER_N_GPU_LAYERS: int = Field(
        default=0, ge=-1, description="卸载到 GPU 的层数，-1 表示全部；模型权重只加载一次，所有上下文共享"
    )

    REFINER_ACQUIRE_TIMEOUT: float | None = Field(
        default=None,
        gt=0,
        description="等待准入许可的超时时间（秒）。默认不超时，请求会一直排队。",
    )

    def model_post_init(self, context: Any, /) -> None:
        try:
            if not self.whitelist and self.TELEGRAM_CHAT_WHITELIST:
                self.whitelist = {
                    int(i.strip()) for i in filter(None, self.TELEGRAM_CHAT_WHITELIST.split(","))
                }
        except Exception as err:
            logger.warning(f"解析 TELEGRAM_CHAT_WHITELIST 失败 - {err}")

        # 许可数大于上下文数时，取上下文会遇到空池
        if self.REFINER_MAX_CONCURRENCY > self.REFINER_POOL_SIZE:
            logger.warning(
                f"REFINER_MAX_CONCURRENCY ({self.REFINER_MAX_CONCURRENCY}) 大于 "
                f"REFINER_POOL_SIZE ({self.REFINER_POOL_SIZE})，已自动调整为 {self.REFINER_POOL_SIZE}"
            )
            self.REFINER_MAX_CONCURRENCY = self.REFINER_POOL_SIZE

        if not self.ENABLE_LITERAL_TRANSLATION and not self.ENABLE_REFINEMENT:
            logger.warning("直译与精修均被关闭，已自动开启 M2M100 直译阶段")
            self.ENABLE_LITERAL_TRANSLATION = True

    def get_default_application(self) -> Application:
        _base_builder = (
            Application.builder()
            .token(self.TELEGRAM_BOT_API_TOKEN.get_secret_value())
            .connect_timeout(self.HTTP_REQUEST_TIMEOUT)
            .write_timeout(self.HTTP_REQUEST_TIMEOUT)
            .read_timeout(self.HTTP_REQUEST_TIMEOUT)
        )
        if proxy_url := getproxies().get("http"):
            logger.success(f"使用代理: {proxy_url}")
            application = _base_builder.proxy(proxy_url).get_updates_proxy(proxy_url).build()
        else:
            application = _base_builder.build()

        return application


settings = Settings()  # type: ignore
