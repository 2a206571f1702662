# -*- coding: utf-8 -*-
"""
@Time    : 2025/11/4 10:40
@Author  : QIN2DIM
@GitHub  : https://github.com/QIN2DIM
@Desc    : Tests for Settings post-init adjustments
"""
from settings import Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_concurrency_is_clamped_to_pool_size(self):
        config = make_settings(REFINER_POOL_SIZE=2, REFINER_MAX_CONCURRENCY=5)
        assert config.REFINER_MAX_CONCURRENCY == 2

    def test_concurrency_within_pool_size_is_kept(self):
        config = make_settings(REFINER_POOL_SIZE=4, REFINER_MAX_CONCURRENCY=3)
        assert config.REFINER_MAX_CONCURRENCY == 3

    def test_literal_stage_is_forced_on_when_both_stages_are_off(self):
        config = make_settings(ENABLE_LITERAL_TRANSLATION=False, ENABLE_REFINEMENT=False)
        assert config.ENABLE_LITERAL_TRANSLATION

    def test_refinement_only_is_allowed(self):
        config = make_settings(ENABLE_LITERAL_TRANSLATION=False, ENABLE_REFINEMENT=True)
        assert not config.ENABLE_LITERAL_TRANSLATION

    def test_whitelist_is_parsed(self):
        config = make_settings(TELEGRAM_CHAT_WHITELIST="-100123, 42,,")
        assert config.whitelist == {-100123, 42}

    def test_bad_whitelist_is_ignored(self):
        config = make_settings(TELEGRAM_CHAT_WHITELIST="abc")
        assert config.whitelist == set()

    def test_gpu_layers_default_to_cpu(self):
        assert make_settings().REFINER_N_GPU_LAYERS == 0
