"""DogeMiner deposit API."""
