"""DartForge: generates Dart data class members and infers classes from JSON."""
