"""
Location controller test suite

Structure:
- unit/: component tests (validator, registry, address, geocoding, controller, sensor, config)
- integration/: controller + simulated sensor + geocoding end to end
- helpers.py: fix builders and recording fakes shared by both
"""
