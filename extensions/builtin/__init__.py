"Mitgelieferte Extensions"

BUILTIN_EXTENSIONS = [
    "extensions.builtin.base_box",
    "extensions.builtin.test_2",
    "extensions.builtin.this_is_a_test_extension",
]
