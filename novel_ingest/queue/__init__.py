from novel_ingest.queue.kafka_reader import KafkaReader, QueueMessage

__all__ = ["KafkaReader", "QueueMessage"]
