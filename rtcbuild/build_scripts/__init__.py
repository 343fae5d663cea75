#
# Copyright 2024 rtcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""Build stages for fetching, building and harvesting WebRTC."""

__all__ = [
    "build_utils",
    "build_webrtc",
    "harvest",
    "source_manager",
    "targets",
]
