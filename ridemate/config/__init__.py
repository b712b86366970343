"""Configuration module for RideMate"""

from ridemate.config.settings import (
    BaseAppSettings,
    DevelopmentSettings,
    TestSettings,
    StagingSettings,
    ProductionSettings,
    SettingsFactory,
    get_settings,
    get_cached_settings
)

__all__ = [
    'BaseAppSettings',
    'DevelopmentSettings',
    'TestSettings',
    'StagingSettings',
    'ProductionSettings',
    'SettingsFactory',
    'get_settings',
    'get_cached_settings'
]
