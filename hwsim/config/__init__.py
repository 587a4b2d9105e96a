from hwsim.config.settings import StoreSettings

__all__ = ["StoreSettings"]
