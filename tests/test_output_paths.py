from pathlib import Path

from xdmextract.output_paths import OutputPaths


def test_names_beside_input():
    paths = OutputPaths.from_input("shots/photo.jpg")
    assert paths.xmp == Path("shots/photo_xmp.xml")
    assert paths.xap == Path("shots/photo_xap.xml")
    assert paths.image(0) == Path("shots/photo_0.jpg")
    assert paths.depth(2) == Path("shots/photo_depth_2.png")


def test_only_final_suffix_is_removed():
    paths = OutputPaths.from_input("IMG_20171203.xdm.jpeg")
    assert paths.xmp == Path("IMG_20171203.xdm_xmp.xml")


def test_output_dir():
    paths = OutputPaths.from_input("shots/photo.jpg", output_dir="out")
    assert paths.image(1) == Path("out/photo_1.jpg")
