"""HTTP access to the Serenia backend."""
