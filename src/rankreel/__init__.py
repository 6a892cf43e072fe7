"""rankreel — ranked-list video rendering.

Overlay a title banner, progressively revealed rank entries and a
watermark onto uploaded clips, then hand the composition to ffmpeg.
Layout (mixed-script text fitting) and reveal planning live here;
storage, status and transcoding are thin adapters.
"""
