VERSION = "1.0.0"
USER_AGENT = f"IRIS-Python-SDK/{VERSION}"
