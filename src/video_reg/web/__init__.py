"""Web front end for video_reg."""
