from hwsim.drivers.tag_device import TagDevice, RegisterSpec

__all__ = ["TagDevice", "RegisterSpec"]
