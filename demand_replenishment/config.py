import os
import configparser
from pathlib import Path

from demand_replenishment.exceptions import ConfigError

class Config:
    """Configuration manager for the Demand Replenishment System."""
    
    _instance = None
    
    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance
    
    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return
        
        env_path = os.environ.get('DEMAND_REPLENISHMENT_CONFIG')
        if env_path:
            self._config_path = Path(env_path)
            if not self._config_path.exists():
                raise ConfigError(
                    f"Configuration file not found: {env_path}",
                    details={'path': env_path}
                )
        else:
            self._config_path = Path('config') / 'settings.ini'
        self._config_dir = self._config_path.parent
        self._config = configparser.ConfigParser(interpolation=None)
        
        # Load config or create default
        if self._config_path.exists():
            try:
                self._config.read(self._config_path)
            except configparser.Error as e:
                raise ConfigError(
                    f"Invalid configuration file {self._config_path}: {str(e)}",
                    details={'path': str(self._config_path)}
                )
        else:
            self._create_default_config()
            
        self._initialized = True
    
    def _create_default_config(self):
        """Create default configuration file."""
        self._config['DATABASE'] = {
            'url': '',
            'engine': 'postgresql',
            'host': 'localhost',
            'port': '5432',
            'database': 'demand_replenishment',
            'username': 'postgres',
            'password': 'postgres',
            'echo': 'False',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800'
        }
        
        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True',
            'file_output': 'True'
        }
        
        self._config['BATCH_PROCESS'] = {
            'batch_size': '50',
            'default_lookback_days': '30',
            'seasonality_lookback_months': '24',
            'max_error_samples': '10'
        }
        
        self._config['FORECASTING'] = {
            'default_horizon': '30',
            'min_horizon': '7',
            'max_horizon': '90',
            'default_algorithm': 'AUTO',
            'ma_window': '14',
            'ses_alpha': '0.3',
            'hw_alpha': '0.4',
            'hw_beta': '0.2',
            'hw_gamma': '0.3',
            'hw_period': '7',
            'history_days': '365',
            'default_lead_time_days': '7'
        }
        
        self._config['SEASONALITY'] = {
            'intensity_threshold': '0.15',
            'min_points': '12'
        }
        
        self._config['REPLENISHMENT'] = {
            'safety_buffer': '1.2'
        }
        
        self._save_config()
    
    def _save_config(self):
        """Save configuration to file."""
        if not self._config_dir.exists():
            self._config_dir.mkdir(parents=True)

        with open(self._config_path, 'w') as configfile:
            self._config.write(configfile)
    
    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default
    
    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default
    
    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default
    
    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default
    
    def set(self, section, key, value):
        """Set configuration value."""
        if not self._config.has_section(section):
            self._config.add_section(section)
        
        self._config.set(section, key, str(value))
        self._save_config()
    
    def get_db_url(self):
        """Generate SQLAlchemy database URL."""
        url = self.get('DATABASE', 'url', '')
        if url:
            return url
        
        engine = self.get('DATABASE', 'engine', 'postgresql')
        username = self.get('DATABASE', 'username', 'postgres')
        password = self.get('DATABASE', 'password', 'postgres')
        host = self.get('DATABASE', 'host', 'localhost')
        port = self.get('DATABASE', 'port', '5432')
        database = self.get('DATABASE', 'database', 'demand_replenishment')
        
        return f"{engine}://{username}:{password}@{host}:{port}/{database}"
    
    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', True)
        }
    
    @property
    def batch_config(self):
        """Get batch processing configuration."""
        return {
            'batch_size': self.get_int('BATCH_PROCESS', 'batch_size', 50),
            'default_lookback_days': self.get_int('BATCH_PROCESS', 'default_lookback_days', 30),
            'seasonality_lookback_months': self.get_int('BATCH_PROCESS', 'seasonality_lookback_months', 24),
            'max_error_samples': self.get_int('BATCH_PROCESS', 'max_error_samples', 10)
        }
    
    @property
    def forecast_config(self):
        """Get forecasting configuration."""
        return {
            'default_horizon': self.get_int('FORECASTING', 'default_horizon', 30),
            'min_horizon': self.get_int('FORECASTING', 'min_horizon', 7),
            'max_horizon': self.get_int('FORECASTING', 'max_horizon', 90),
            'default_algorithm': self.get('FORECASTING', 'default_algorithm', 'AUTO'),
            'ma_window': self.get_int('FORECASTING', 'ma_window', 14),
            'ses_alpha': self.get_float('FORECASTING', 'ses_alpha', 0.3),
            'hw_alpha': self.get_float('FORECASTING', 'hw_alpha', 0.4),
            'hw_beta': self.get_float('FORECASTING', 'hw_beta', 0.2),
            'hw_gamma': self.get_float('FORECASTING', 'hw_gamma', 0.3),
            'hw_period': self.get_int('FORECASTING', 'hw_period', 7),
            'history_days': self.get_int('FORECASTING', 'history_days', 365),
            'default_lead_time_days': self.get_int('FORECASTING', 'default_lead_time_days', 7)
        }
    
    @property
    def seasonality_config(self):
        """Get seasonality analysis configuration."""
        return {
            'intensity_threshold': self.get_float('SEASONALITY', 'intensity_threshold', 0.15),
            'min_points': self.get_int('SEASONALITY', 'min_points', 12)
        }
    
    @property
    def replenishment_config(self):
        """Get replenishment configuration."""
        return {
            'safety_buffer': self.get_float('REPLENISHMENT', 'safety_buffer', 1.2)
        }

# Global config instance
config = Config()
