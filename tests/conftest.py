from hypothesis import HealthCheck, settings
import os

# Strict CI profile: heavy exploration of tokenizer and binder properties
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=200,
    suppress_health_check=[HealthCheck.too_slow],
    derandomize=False,
    print_blob=True,
)

# Light profile for mutation testing
settings.register_profile(
    "mutation",
    max_examples=25,
    deadline=100,
    suppress_health_check=[HealthCheck.too_slow],
    derandomize=True,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
