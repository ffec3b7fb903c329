from libdesk.config.config import Config, TestingConfig, parse_duration

__all__ = ['Config', 'TestingConfig', 'parse_duration']
