import pytest

from otkernel.dirtree import MAX_NODES, DirError, DirTree, ReaddirOverflow


@pytest.fixture
def tree():
    t = DirTree()
    t.mkdir("/var")
    t.mkdir("/usr")
    t.mkdir("/tmp")
    t.mkdir("/etc")
    t.mkdir_p("/usr/local/bin")
    t.mkdir_p("/var/log/nginx")
    return t


def test_root_readdir_is_sorted(tree):
    assert tree.readdir("/", 8) == ["etc", "tmp", "usr", "var"]


def test_nested_readdir(tree):
    assert tree.readdir("/usr", 8) == ["local"]


def test_count_only_query(tree):
    assert len(tree.readdir("/")) == 4


def test_readdir_overflow_reports_count(tree):
    with pytest.raises(ReaddirOverflow) as info:
        tree.readdir("/", 2)
    assert info.value.count == 4


def test_readdir_zero_limit_on_empty_dir(tree):
    assert tree.readdir("/tmp", 0) == []


def test_readdir_missing_raises(tree):
    with pytest.raises(DirError):
        tree.readdir("/nope")


def test_cd_pwd_sequence(tree):
    tree.cd("/usr/local/bin")
    assert tree.pwd() == "/usr/local/bin"
    assert tree.walk("../..") >= 0
    tree.cd("../..")
    assert tree.pwd() == "/usr"
    tree.cd("/")
    tree.cd("var/log")
    assert tree.pwd() == "/var/log"
    with pytest.raises(DirError):
        tree.cd("/does-not-exist")
    assert tree.pwd() == "/var/log"


def test_walk_root_and_consistency(tree):
    assert tree.walk("/") == 0
    assert tree.walk("/usr/local") == tree.walk("/usr/./local/bin/..")


def test_relative_readdir_uses_cwd(tree):
    tree.cd("/var")
    assert tree.readdir("log") == ["nginx"]


def test_fresh_tree_pwd_is_root():
    assert DirTree().pwd() == "/"


def test_mkdir_existing_raises(tree):
    with pytest.raises(DirError):
        tree.mkdir("/usr")


def test_mkdir_missing_parent_raises():
    t = DirTree()
    with pytest.raises(DirError):
        t.mkdir("/a/b")
    assert t.readdir("/") == []


def test_mkdir_root_raises():
    with pytest.raises(DirError):
        DirTree().mkdir_p("/")


def test_mkdir_p_existing_is_ok(tree):
    tree.mkdir_p("/usr/local")
    assert tree.readdir("/usr") == ["local"]


def test_mkdir_name_too_long():
    t = DirTree()
    with pytest.raises(DirError):
        t.mkdir("x" * 32)
    t.mkdir("x" * 31)
    assert t.readdir("/") == ["x" * 31]


def test_node_limit():
    t = DirTree()
    for i in range(MAX_NODES - 1):
        t.mkdir(f"/d{i:03d}")
    with pytest.raises(DirError):
        t.mkdir("/overflow")
    assert len(t.readdir("/")) == MAX_NODES - 1


def test_mkdir_relative_to_cwd(tree):
    tree.cd("/tmp")
    tree.mkdir("work")
    tree.cd("work")
    assert tree.pwd() == "/tmp/work"