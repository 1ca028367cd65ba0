from .asserts import assert_true_soon, assert_equal_soon
from .transport import FakeTransport
